"""
Executor for languages run directly by an interpreter.

The source is written to ``<basename><extension>`` in the scratch
directory and the interpreter is invoked on that file.  Standard output
and error are captured via the base class helper.
"""

from __future__ import annotations

from typing import List, Sequence

from ..artifacts import ArtifactScope
from .base import CodeExecutor, StrategyKind, render


class InterpretedExecutor(CodeExecutor):
    """Run a source file through ``command`` (e.g. ``("python3", "{source}")``)."""

    strategy = StrategyKind.INTERPRETED

    def __init__(self, command: Sequence[str], extension: str) -> None:
        super().__init__(extension)
        self.command = tuple(command)

    def prepare(self, scope: ArtifactScope, source: str) -> List[List[str]]:
        source_path = scope.write_source(self.extension, source)
        return [render(self.command, source=str(source_path))]
