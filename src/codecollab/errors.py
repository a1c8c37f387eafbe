"""Exception types raised by the execution engine.

Only conditions that are *not* a classified execution outcome are raised
as exceptions.  Everything that happens to user code (timeouts, compile
errors, missing toolchains) is reported through
:class:`codecollab.outcome.ExecutionOutcome` instead.
"""

from __future__ import annotations


class CodeCollabError(Exception):
    """Base class for all service errors."""


class UnsupportedLanguageError(CodeCollabError):
    """The requested language is not present in the toolchain registry."""

    def __init__(self, language: str) -> None:
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class ScratchDirectoryError(CodeCollabError):
    """The scratch directory for execution artifacts could not be created."""
