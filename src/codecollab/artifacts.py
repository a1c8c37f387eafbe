"""
Naming and lifetime of per-invocation scratch artifacts.

Every execution writes its source (and, for compiled languages, a binary
or class directory) into one shared scratch directory.  Invocations are
kept apart purely by name: :class:`ArtifactNamer` hands out basenames
that combine a millisecond timestamp, a per-process counter and a random
suffix, so two requests landing in the same millisecond still get
distinct files.

:class:`ArtifactScope` owns those files for the duration of one
invocation and deletes them on every exit path.  Deletion failures are
logged and swallowed; they are never reported to the caller.
"""

from __future__ import annotations

import itertools
import logging
import os
import secrets
import shutil
import threading
import time
from pathlib import Path
from typing import List, Optional


logger = logging.getLogger("codecollab.artifacts")


class ArtifactNamer:
    """Thread-safe generator of collision-resistant artifact basenames.

    Names have the shape ``<prefix>_<epoch-ms>_<counter>_<hex>`` and are
    valid identifiers in every supported language, which matters for Java
    where the public class name must match the file name.
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next(self, prefix: str = "code") -> str:
        with self._lock:
            sequence = next(self._counter)
        stamp = int(time.time() * 1000)
        return f"{prefix}_{stamp}_{sequence}_{secrets.token_hex(3)}"


class ArtifactScope:
    """Context manager tracking every artifact created for one invocation.

    Besides explicitly registered paths, anything in the scratch directory
    whose name starts with the scope's basename is removed on exit.  That
    sweep catches toolchain by-products such as Windows ``.exe`` variants.
    """

    def __init__(self, scratch_dir: Path, basename: str) -> None:
        self.scratch_dir = Path(scratch_dir)
        self.basename = basename
        self._paths: List[Path] = []

    def __enter__(self) -> "ArtifactScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def path(self, suffix: str = "", name: Optional[str] = None) -> Path:
        """Return (and register) ``<scratch>/<basename><suffix>``."""
        target = self.scratch_dir / (name if name is not None else self.basename + suffix)
        self._paths.append(target)
        return target

    def write_source(self, extension: str, content: str) -> Path:
        source = self.path(extension)
        source.write_text(content, encoding="utf-8")
        return source

    def release(self) -> None:
        candidates = list(self._paths)
        try:
            candidates.extend(self.scratch_dir.glob(self.basename + "*"))
        except OSError as exc:
            logger.warning("Unable to list scratch dir %s: %s", self.scratch_dir, exc)

        seen = set()
        for path in candidates:
            if path in seen:
                continue
            seen.add(path)
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                elif path.exists() or path.is_symlink():
                    path.unlink()
            except OSError as exc:
                logger.warning("Cleanup error for %s: %s", path, exc)
        self._paths.clear()


def binary_suffix() -> str:
    """Executable suffix produced by native compilers on this platform."""
    return ".exe" if os.name == "nt" else ""
