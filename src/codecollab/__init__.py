"""CodeCollab backend package.

This package provides the server side of a collaborative code editor:
sandboxed execution of user-submitted code in several languages, and
realtime synchronisation of shared editing rooms.

The top‑level modules include:

* ``config`` – configuration handling for environment variables.
* ``models`` – Pydantic models for HTTP bodies and realtime payloads.
* ``languages`` – the toolchain registry mapping languages to strategies.
* ``validators`` – static checkers for HTML, CSS and bracket balance.
* ``executor`` – interpreted, compiled and validate‑only strategies.
* ``runner`` / ``classifier`` – running a submission and classifying failures.
* ``rooms`` / ``gateway`` – room snapshot store and WebSocket broadcast.
* ``api`` – FastAPI application exposing HTTP and WebSocket endpoints.
"""

from . import api  # noqa: F401
