"""
Base interfaces and dataclasses for execution strategies.

Every executed language is driven by a :class:`CodeExecutor` that
implements three steps:

``prepare``
    materialise the submission inside an :class:`ArtifactScope` and
    return the command line(s) to run;
``invoke``
    run those commands with a shared wall-clock budget and an output cap;
``cleanup``
    release every artifact the scope registered.

Interpreted and compiled languages differ only in what ``prepare``
returns (one command, or a compile command followed by a run command).
Validate-only languages never reach this module; see
:mod:`codecollab.executor.static`.

Resource limitations are enforced here: the wall-clock timeout kills the
whole process group (POSIX) and output beyond ``max_output_bytes`` on
either stream stops the process.  Process-level isolation is all that is
provided; containers or VMs can be layered on top by swapping the
command templates.
"""

from __future__ import annotations

import abc
import logging
import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum
from functools import partial
from pathlib import Path
from typing import IO, List, Optional, Sequence

from ..artifacts import ArtifactScope


logger = logging.getLogger("codecollab.executor")

READ_CHUNK_BYTES = 64 * 1024
READER_GRACE_SECONDS = 1.0
TIMEOUT_EXIT_CODE = -9
MISSING_BINARY_EXIT_CODE = 127


class StrategyKind(str, Enum):
    INTERPRETED = "interpreted"
    COMPILED = "compiled"
    VALIDATE_ONLY = "validate_only"


@dataclass
class ProcessResult:
    """Raw observations from running one or more commands.

    Attributes
    ----------
    stdout: str
        Standard output captured from the execution.
    stderr: str
        Standard error captured from the execution.
    exit_code: int
        Exit status of the last process.  Zero usually indicates success.
    duration_ms: int
        Wall-clock execution time in milliseconds.
    timed_out: bool
        The deadline expired and the process was killed.
    truncated: bool
        One of the streams exceeded the output cap and the process was
        stopped early.
    """

    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int
    timed_out: bool = False
    truncated: bool = False


def render(template: Sequence[str], **values: str) -> List[str]:
    """Expand ``{placeholder}`` fields in each argv element."""
    return [part.format(**values) for part in template]


def _terminate(process: subprocess.Popen) -> None:
    try:
        if os.name == "nt":
            process.kill()
        else:
            os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass


def _drain(stream: IO[bytes], chunks: List[bytes], limit: int, on_overflow) -> None:
    size = 0
    try:
        for chunk in iter(partial(stream.read1, READ_CHUNK_BYTES), b""):
            if size + len(chunk) > limit:
                chunks.append(chunk[: limit - size])
                on_overflow()
                break
            chunks.append(chunk)
            size += len(chunk)
    except (OSError, ValueError):
        # The pipe was closed underneath us after a kill.
        pass
    finally:
        stream.close()


class CodeExecutor(abc.ABC):
    """
    Abstract base class for strategies that spawn external processes.

    Subclasses set :attr:`strategy` and implement :meth:`prepare`.
    """

    strategy: StrategyKind
    artifact_prefix: str = "code"

    def __init__(self, extension: str) -> None:
        self.extension = extension

    @abc.abstractmethod
    def prepare(self, scope: ArtifactScope, source: str) -> List[List[str]]:
        """Write ``source`` into ``scope`` and return the commands to run.

        Every path the commands will create must be registered with the
        scope so :meth:`cleanup` can remove it.
        """
        raise NotImplementedError

    def invoke(
        self,
        commands: List[List[str]],
        cwd: Path,
        timeout: float,
        max_output_bytes: int,
    ) -> ProcessResult:
        """Run ``commands`` in order under one shared deadline.

        The first command that fails, times out or overflows its output
        ends the sequence.  Output from every command that ran is
        concatenated.
        """
        deadline = time.monotonic() + timeout
        stdout_parts: List[str] = []
        stderr_parts: List[str] = []
        total_ms = 0
        last: Optional[ProcessResult] = None
        for args in commands:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return ProcessResult(
                    "".join(stdout_parts),
                    "".join(stderr_parts),
                    TIMEOUT_EXIT_CODE,
                    total_ms,
                    timed_out=True,
                )
            last = self._run_subprocess(args, cwd, remaining, max_output_bytes)
            stdout_parts.append(last.stdout)
            stderr_parts.append(last.stderr)
            total_ms += last.duration_ms
            if last.exit_code != 0 or last.timed_out or last.truncated:
                break

        if last is None:
            return ProcessResult("", "", 0, 0)
        return ProcessResult(
            "".join(stdout_parts),
            "".join(stderr_parts),
            last.exit_code,
            total_ms,
            timed_out=last.timed_out,
            truncated=last.truncated,
        )

    def cleanup(self, scope: ArtifactScope) -> None:
        scope.release()

    def _run_subprocess(
        self,
        args: List[str],
        cwd: Path,
        timeout: float,
        max_output_bytes: int,
    ) -> ProcessResult:
        """
        Helper to invoke a subprocess with resource limits and capture
        output.

        The process runs in ``cwd`` with stdin closed.  A timer thread
        kills it once ``timeout`` seconds have elapsed; reader threads
        stop it as soon as either stream exceeds ``max_output_bytes``.
        Once it exits, whatever it left running in its session is killed.

        A binary that cannot be found is reported as a failed run whose
        stderr reads ``"<binary>: command not found"`` so that the error
        classifier can recognise it.
        """
        start_time = time.perf_counter()
        try:
            process = subprocess.Popen(
                args,
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=os.name != "nt",
            )
        except FileNotFoundError:
            duration = int((time.perf_counter() - start_time) * 1000)
            return ProcessResult(
                "", f"{args[0]}: command not found", MISSING_BINARY_EXIT_CODE, duration
            )

        timed_out = False
        truncated = False

        def kill_proc() -> None:
            nonlocal timed_out
            if process.poll() is None:
                timed_out = True
            _terminate(process)

        def stop_on_overflow() -> None:
            nonlocal truncated
            truncated = True
            _terminate(process)

        stdout_chunks: List[bytes] = []
        stderr_chunks: List[bytes] = []
        readers = [
            threading.Thread(
                target=_drain,
                args=(process.stdout, stdout_chunks, max_output_bytes, stop_on_overflow),
                daemon=True,
            ),
            threading.Thread(
                target=_drain,
                args=(process.stderr, stderr_chunks, max_output_bytes, stop_on_overflow),
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        # Start timer thread to enforce wall clock timeout
        timer = threading.Timer(timeout, kill_proc)
        timer.daemon = True
        timer.start()

        try:
            process.wait()
        finally:
            timer.cancel()
            # Reap the whole session, background children included.
            _terminate(process)
            for reader in readers:
                reader.join(READER_GRACE_SECONDS)
            duration = int((time.perf_counter() - start_time) * 1000)

        stdout = b"".join(stdout_chunks).decode("utf-8", errors="replace")
        stderr = b"".join(stderr_chunks).decode("utf-8", errors="replace")
        exit_code = process.returncode if process.returncode is not None else -1
        if timed_out:
            exit_code = TIMEOUT_EXIT_CODE
            logger.debug("Killed %s after %.1fs", args[0], timeout)
        return ProcessResult(stdout, stderr, exit_code, duration, timed_out, truncated)
