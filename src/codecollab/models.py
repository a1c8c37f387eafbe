"""Pydantic models for request, response and realtime payloads.

Wire field names follow what the editor client sends (``file_name``,
``updated_at``, ``user_id``, ``created_at``); the Python attribute names
are the ones used throughout the backend.  Snapshot models accept and
preserve unknown keys so that client-side fields the server does not
care about survive a round trip through the room store.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExecuteRequest(BaseModel):
    """Request body for ``POST /execute``."""

    code: Optional[str] = Field(default=None, description="Source code to execute.")
    language: Optional[str] = Field(
        default=None,
        description="Language identifier, e.g. 'python', 'cpp', 'html'.",
    )


class ExecuteResponse(BaseModel):
    """Successful (or runtime-error) execution payload."""

    output: str


class ErrorResponse(BaseModel):
    """Rejected execution payload."""

    error: str


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class FileRecord(_WireModel):
    id: str
    name: str = Field(default="", alias="file_name")
    content: str = ""
    last_updated: Optional[str] = Field(default=None, alias="updated_at")


class MessageRecord(_WireModel):
    id: str
    author_id: Optional[str] = Field(default=None, alias="user_id")
    content: str = ""
    timestamp: Optional[str] = Field(default=None, alias="created_at")


class ProjectSnapshot(_WireModel):
    """Server-held copy of a room's files and messages."""

    project: Optional[Dict[str, Any]] = None
    files: List[FileRecord] = Field(default_factory=list)
    messages: List[MessageRecord] = Field(default_factory=list)


class FileContentChange(_WireModel):
    file_id: str = Field(alias="fileId")
    content: str


class EventFrame(BaseModel):
    """Envelope of every realtime frame: ``{"event": ..., "data": ...}``."""

    event: str
    data: Any = None
