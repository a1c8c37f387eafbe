"""
Realtime broadcast gateway for collaborative rooms.

Clients connect to ``/ws?roomId=<room>&userId=<user>`` and exchange JSON
frames of the form ``{"event": <name>, "data": <payload>}``.  Every
state-changing event is applied to the room's snapshot through the
:class:`RoomSessionStore` and relayed to every *other* connection in the
same room; the sender never receives its own event back.

Each connection owns a bounded outbound queue drained by its own writer
task, so relaying never waits on a slow peer.  A peer whose queue fills
up is dropped from its room and closed; on reconnect the client asks for
a fresh snapshot with ``request-snapshot``.

Browser handshakes whose ``Origin`` is not in the configured allow-list
are closed with 1008 before they are accepted.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from fastapi import APIRouter, WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect

from .models import EventFrame, FileContentChange, FileRecord, MessageRecord, ProjectSnapshot
from .rooms import RoomSessionStore


logger = logging.getLogger("codecollab.gateway")

OUTBOUND_QUEUE_SIZE = 1024
POLICY_VIOLATION = 1008
TRY_AGAIN_LATER = 1013

REQUEST_SNAPSHOT = "request-snapshot"
SHARE_SNAPSHOT = "share-snapshot"
FILE_CONTENT_CHANGED = "file-content-changed"
FILE_CREATED = "file-created"
FILE_DELETED = "file-deleted"
CHAT_MESSAGE = "chat-message"
SNAPSHOT = "snapshot"
ERROR = "error"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class Connection:
    """One joined client: its socket, its room and its outbound queue."""

    def __init__(self, websocket: WebSocket, room_id: str, user_id: Optional[str]) -> None:
        self.websocket = websocket
        self.room_id = room_id
        self.user_id = user_id
        self.closed = False
        self._outbound: asyncio.Queue = asyncio.Queue(maxsize=OUTBOUND_QUEUE_SIZE)
        self._closing: Optional[asyncio.Task] = None

    def send(self, event: str, data: Any) -> bool:
        """Queue a frame for delivery.  Returns ``False`` if the queue is full."""
        if self.closed:
            return False
        try:
            self._outbound.put_nowait({"event": event, "data": data})
        except asyncio.QueueFull:
            return False
        return True

    async def pump(self) -> None:
        """Write queued frames to the socket in order until cancelled."""
        while True:
            frame = await self._outbound.get()
            try:
                await self.websocket.send_json(frame)
            except (WebSocketDisconnect, RuntimeError) as exc:
                logger.debug("Stopped writing to %s in room %s: %s", self.user_id, self.room_id, exc)
                return

    def abort(self, code: int = TRY_AGAIN_LATER) -> None:
        self.closed = True
        self._closing = asyncio.create_task(self._close(code))

    async def _close(self, code: int) -> None:
        try:
            await self.websocket.close(code=code)
        except RuntimeError:
            # Already closed by the client.
            pass


Handler = Callable[[Connection, Any], Awaitable[None]]


class RoomGateway:
    """Fan-out groups per room plus the event handlers that mutate snapshots.

    Groups are only touched from the event loop, so they need no lock;
    snapshot access goes through the store, which serialises per room.
    """

    def __init__(self, store: RoomSessionStore, allowed_origins: Optional[List[str]] = None) -> None:
        self.store = store
        self.allowed_origins: List[str] = list(allowed_origins or [])
        self._groups: Dict[str, Set[Connection]] = {}
        self._handlers: Dict[str, Handler] = {
            REQUEST_SNAPSHOT: self._request_snapshot,
            SHARE_SNAPSHOT: self._share_snapshot,
            FILE_CONTENT_CHANGED: self._file_content_changed,
            FILE_CREATED: self._file_created,
            FILE_DELETED: self._file_deleted,
            CHAT_MESSAGE: self._chat_message,
        }

    def join(self, connection: Connection) -> None:
        self._groups.setdefault(connection.room_id, set()).add(connection)
        logger.info("User %s joined room %s", connection.user_id, connection.room_id)

    def leave(self, connection: Connection) -> None:
        group = self._groups.get(connection.room_id)
        if group is None or connection not in group:
            return
        group.discard(connection)
        if not group:
            del self._groups[connection.room_id]
        logger.info("User %s left room %s", connection.user_id, connection.room_id)

    def members(self, room_id: str) -> List[Connection]:
        return list(self._groups.get(room_id, ()))

    def rooms(self) -> List[str]:
        return list(self._groups)

    def origin_allowed(self, origin: Optional[str]) -> bool:
        """Check a handshake's ``Origin`` header against :attr:`allowed_origins`.

        An empty list or ``"*"`` admits everyone.  Requests without an
        ``Origin`` header come from non-browser clients and are admitted.
        """
        if not self.allowed_origins or "*" in self.allowed_origins:
            return True
        if origin is None:
            return True
        return origin in self.allowed_origins

    def relay(self, sender: Connection, event: str, data: Any) -> None:
        """Queue ``event`` for every member of the sender's room except the sender."""
        for peer in self.members(sender.room_id):
            if peer is sender:
                continue
            if not peer.send(event, data):
                logger.warning(
                    "Dropping user %s from room %s: outbound queue full",
                    peer.user_id,
                    peer.room_id,
                )
                self.leave(peer)
                peer.abort()

    async def dispatch(self, connection: Connection, frame: EventFrame) -> None:
        handler = self._handlers.get(frame.event)
        if handler is None:
            connection.send(ERROR, {"message": f"Unknown event: {frame.event}"})
            return
        try:
            await handler(connection, frame.data)
        except ValidationError as exc:
            logger.warning("Invalid %s payload in room %s: %s", frame.event, connection.room_id, exc)
            connection.send(ERROR, {"message": f"Invalid payload for {frame.event}"})
        except ValueError as exc:
            logger.warning("Rejected %s in room %s: %s", frame.event, connection.room_id, exc)
            connection.send(ERROR, {"message": str(exc)})
        except Exception:
            logger.exception("Unhandled error processing %s in room %s", frame.event, connection.room_id)
            connection.send(ERROR, {"message": f"Internal error while processing {frame.event}"})

    # ---------- Handlers ----------

    async def _request_snapshot(self, connection: Connection, data: Any) -> None:
        snapshot = await self.store.get(connection.room_id)
        connection.send(SNAPSHOT, snapshot.to_wire() if snapshot is not None else None)

    async def _share_snapshot(self, connection: Connection, data: Any) -> None:
        snapshot = ProjectSnapshot.model_validate(data)
        await self.store.put(connection.room_id, snapshot)
        self.relay(connection, SNAPSHOT, snapshot.to_wire())

    async def _file_content_changed(self, connection: Connection, data: Any) -> None:
        change = FileContentChange.model_validate(data)

        def apply(snapshot: ProjectSnapshot) -> None:
            for record in snapshot.files:
                if record.id == change.file_id:
                    record.content = change.content
                    record.last_updated = _utcnow()
                    return

        await self.store.mutate(connection.room_id, apply)
        self.relay(connection, FILE_CONTENT_CHANGED, change.to_wire())

    async def _file_created(self, connection: Connection, data: Any) -> None:
        created = FileRecord.model_validate(data)

        def apply(snapshot: ProjectSnapshot) -> None:
            for index, record in enumerate(snapshot.files):
                if record.id == created.id:
                    snapshot.files[index] = created
                    return
            snapshot.files.append(created)

        await self.store.mutate(connection.room_id, apply)
        self.relay(connection, FILE_CREATED, created.to_wire())

    async def _file_deleted(self, connection: Connection, data: Any) -> None:
        file_id = data.get("fileId") if isinstance(data, dict) else data
        if not isinstance(file_id, str) or not file_id:
            raise ValueError("file-deleted expects a file id")

        def apply(snapshot: ProjectSnapshot) -> None:
            snapshot.files = [record for record in snapshot.files if record.id != file_id]

        await self.store.mutate(connection.room_id, apply)
        self.relay(connection, FILE_DELETED, data)

    async def _chat_message(self, connection: Connection, data: Any) -> None:
        message = MessageRecord.model_validate(data)

        def apply(snapshot: ProjectSnapshot) -> None:
            snapshot.messages.append(message)

        await self.store.mutate(connection.room_id, apply)
        self.relay(connection, CHAT_MESSAGE, message.to_wire())


router = APIRouter()

store = RoomSessionStore()
gateway = RoomGateway(store)


async def _ignore_until_closed(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws")
async def room_socket(websocket: WebSocket) -> None:
    origin = websocket.headers.get("origin")
    if not gateway.origin_allowed(origin):
        logger.warning("Rejected realtime connection from origin %s", origin)
        await websocket.close(code=POLICY_VIOLATION)
        return

    await websocket.accept()
    room_id = websocket.query_params.get("roomId")
    user_id = websocket.query_params.get("userId")

    if not room_id:
        logger.info("Connection from user %s has no roomId; it will not join a room", user_id)
        await _ignore_until_closed(websocket)
        return

    connection = Connection(websocket, room_id, user_id)
    writer = asyncio.create_task(connection.pump())
    gateway.join(connection)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = message.get("text")
            if text is None:
                connection.send(ERROR, {"message": "Binary frames are not supported"})
                continue
            try:
                frame = EventFrame.model_validate_json(text)
            except ValidationError:
                connection.send(ERROR, {"message": "Malformed frame; expected {\"event\": ..., \"data\": ...}"})
                continue
            await gateway.dispatch(connection, frame)
    except WebSocketDisconnect:
        pass
    finally:
        gateway.leave(connection)
        writer.cancel()
