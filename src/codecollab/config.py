"""Configuration loader.

The backend reads its configuration from environment variables once, at
process start.  There is no hot reload.  Reasonable defaults are provided
so that local development works out of the box.

Environment variables:

``ALLOWED_ORIGINS``
    Comma‑separated list of origins allowed by CORS for both the HTTP API
    and the realtime channel.  Defaults to the local dev servers
    ``http://localhost:5173,http://localhost:3000``.

``PORT``
    The port on which the server listens.  Defaults to 3001.

``HOST``
    The interface to bind.  Defaults to ``0.0.0.0``.

``CODECOLLAB_SCRATCH_DIR``
    Directory where per‑execution artifacts (source files, binaries) are
    written and removed again.  Defaults to ``codecollab`` inside the
    system temp directory.

``CODECOLLAB_EXECUTION_TIMEOUT_MS``
    Wall‑clock timeout (in milliseconds) for a single execution, compile
    step included.  Default is 10000.

``CODECOLLAB_MAX_OUTPUT_BYTES``
    Maximum number of bytes captured per output stream.  A program that
    writes more is stopped.  Default is 1 MiB.

``CODECOLLAB_LOG_LEVEL``
    Level for the ``codecollab`` logger.  Default is ``INFO``.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from typing import List


DEFAULT_ALLOWED_ORIGINS = "http://localhost:5173,http://localhost:3000"


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Config:
    """Centralised configuration object."""

    allowed_origins: List[str]
    host: str
    port: int
    scratch_dir: str
    execution_timeout_ms: int
    max_output_bytes: int
    log_level: str

    @classmethod
    def load(cls) -> "Config":
        allowed_origins = _parse_list(os.getenv("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS))

        def _int_var(name: str, default: int) -> int:
            val = os.getenv(name)
            if val is None:
                return default
            try:
                parsed = int(val)
            except ValueError:
                raise ValueError(f"Invalid integer for {name}: {val}")
            if parsed <= 0:
                raise ValueError(f"{name} must be positive, got {parsed}")
            return parsed

        scratch_dir = os.getenv(
            "CODECOLLAB_SCRATCH_DIR", os.path.join(tempfile.gettempdir(), "codecollab")
        )
        log_level = os.getenv("CODECOLLAB_LOG_LEVEL", "INFO").upper()

        return cls(
            allowed_origins=allowed_origins,
            host=os.getenv("HOST", "0.0.0.0"),
            port=_int_var("PORT", 3001),
            scratch_dir=scratch_dir,
            execution_timeout_ms=_int_var("CODECOLLAB_EXECUTION_TIMEOUT_MS", 10_000),
            max_output_bytes=_int_var("CODECOLLAB_MAX_OUTPUT_BYTES", 1024 * 1024),
            log_level=log_level,
        )

    @classmethod
    def from_env(cls) -> "Config":
        """
        Alternate constructor used by the API to load configuration.

        This wrapper calls :meth:`load` to construct the configuration.
        """
        return cls.load()
