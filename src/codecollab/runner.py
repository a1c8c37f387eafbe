"""
Execution runner: from source text and a language to a classified outcome.

The runner is synchronous and thread-safe.  The HTTP layer calls it from
a worker thread so no invocation ever blocks the event loop.  Requests
share nothing but the scratch directory, and each one owns its artifacts
through an :class:`ArtifactScope` that is released on every exit path.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, Union

from .artifacts import ArtifactNamer, ArtifactScope
from .classifier import classify
from .errors import ScratchDirectoryError
from .executor import CodeExecutor, ProcessResult, ValidateOnlyExecutor, validation_message
from .languages import Language, LanguageSpec, ToolchainRegistry
from .outcome import ExecutionOutcome


logger = logging.getLogger("codecollab.runner")

DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024


def timeout_message(timeout_ms: int) -> str:
    seconds = timeout_ms / 1000
    shown = f"{seconds:g}"
    return (
        f"Error: Execution timed out after {shown} seconds.\n\n"
        "This might happen if:\n"
        "- Your code has an infinite loop\n"
        "- The program is waiting for input\n"
        "- The computation is taking too long\n\n"
        "Try optimizing your code or reducing the complexity."
    )


class ExecutionRunner:
    """Run submissions through the strategy registered for their language."""

    def __init__(
        self,
        scratch_dir: Union[str, Path],
        registry: Optional[ToolchainRegistry] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ) -> None:
        self.scratch_dir = Path(scratch_dir)
        self.registry = registry or ToolchainRegistry()
        self.timeout_ms = timeout_ms
        self.max_output_bytes = max_output_bytes
        self._namer = ArtifactNamer()
        self._scratch_lock = threading.Lock()
        self._scratch_ready = False

    def run(
        self,
        source: str,
        language: Union[str, Language],
        timeout_ms: Optional[int] = None,
        max_output_bytes: Optional[int] = None,
    ) -> ExecutionOutcome:
        """Execute ``source`` and return its classified outcome.

        Raises
        ------
        UnsupportedLanguageError
            ``language`` is not in the registry.  Raised before any file
            or process is touched.
        ScratchDirectoryError
            The scratch directory could not be created.
        """
        spec = self.registry.resolve(language)
        timeout_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        max_output_bytes = max_output_bytes if max_output_bytes is not None else self.max_output_bytes

        if spec.pre_validator is not None:
            checked = spec.pre_validator(source)
            if not checked.valid:
                return ExecutionOutcome.validation_failed(
                    validation_message(spec.display_name, checked)
                )

        executor = spec.executor
        if isinstance(executor, ValidateOnlyExecutor):
            outcome = executor.check(source)
        else:
            outcome = self._execute(spec, executor, source, timeout_ms, max_output_bytes)

        logger.info(
            "Executed %s: outcome=%s, exit_code=%s, duration_ms=%s",
            spec.language.value,
            outcome.kind.value,
            outcome.exit_code,
            outcome.duration_ms,
        )
        return outcome

    def ensure_scratch_dir(self) -> Path:
        """Create the scratch directory once; later calls are no-ops."""
        if self._scratch_ready:
            return self.scratch_dir
        with self._scratch_lock:
            if not self._scratch_ready:
                try:
                    self.scratch_dir.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    raise ScratchDirectoryError(
                        f"Unable to create scratch directory {self.scratch_dir}: {exc}"
                    ) from exc
                self._scratch_ready = True
        return self.scratch_dir

    def _execute(
        self,
        spec: LanguageSpec,
        executor: CodeExecutor,
        source: str,
        timeout_ms: int,
        max_output_bytes: int,
    ) -> ExecutionOutcome:
        scratch = self.ensure_scratch_dir()
        scope = ArtifactScope(scratch, self._namer.next(executor.artifact_prefix))
        try:
            commands = executor.prepare(scope, source)
            result = executor.invoke(commands, scratch, timeout_ms / 1000, max_output_bytes)
            return self._outcome(spec, scope, result, timeout_ms, max_output_bytes)
        finally:
            executor.cleanup(scope)

    def _outcome(
        self,
        spec: LanguageSpec,
        scope: ArtifactScope,
        result: ProcessResult,
        timeout_ms: int,
        max_output_bytes: int,
    ) -> ExecutionOutcome:
        observations = {"exit_code": result.exit_code, "duration_ms": result.duration_ms}

        if result.timed_out:
            return ExecutionOutcome.timed_out(timeout_message(timeout_ms), **observations)

        if result.truncated:
            return ExecutionOutcome.runtime_error(
                f"Output exceeded the {max_output_bytes} byte limit; the program was stopped.",
                **observations,
            )

        if result.exit_code == 0:
            return ExecutionOutcome.success(
                result.stdout or result.stderr or "No output", **observations
            )

        raw = result.stderr or result.stdout or "Execution error"
        return classify(spec.language, self._readable(raw, spec, scope), **observations)

    @staticmethod
    def _readable(diagnostic: str, spec: LanguageSpec, scope: ArtifactScope) -> str:
        """Replace generated artifact paths with the language's display filename."""
        stem, _, _ = spec.filename.rpartition(".")
        base = str(scope.scratch_dir / scope.basename)
        diagnostic = diagnostic.replace(base + spec.executor.extension, spec.filename)
        diagnostic = diagnostic.replace(scope.basename + spec.executor.extension, spec.filename)
        diagnostic = diagnostic.replace(base, stem)
        return diagnostic.replace(scope.basename, stem)
