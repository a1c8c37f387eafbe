"""Classified results of an execution attempt."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    VALIDATION_FAILED = "validation_failed"
    TIMED_OUT = "timed_out"
    TOOLCHAIN_MISSING = "toolchain_missing"
    RUNTIME_ERROR = "runtime_error"


@dataclass
class ExecutionOutcome:
    """Tagged result of running (or validating) a submission.

    Attributes
    ----------
    kind: OutcomeKind
        Exactly one classification per attempt.
    text: str
        Human-facing payload: captured output for successes, a classified
        message otherwise.
    exit_code: int, optional
        Exit status of the last process that ran.  ``None`` when no
        process was spawned (validate-only languages, rejected input).
    duration_ms: int, optional
        Wall-clock time spent in external processes.
    """

    kind: OutcomeKind
    text: str
    exit_code: Optional[int] = None
    duration_ms: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def success(cls, text: str, **observations) -> "ExecutionOutcome":
        return cls(OutcomeKind.SUCCESS, text, **observations)

    @classmethod
    def validation_failed(cls, text: str) -> "ExecutionOutcome":
        return cls(OutcomeKind.VALIDATION_FAILED, text)

    @classmethod
    def timed_out(cls, text: str, **observations) -> "ExecutionOutcome":
        return cls(OutcomeKind.TIMED_OUT, text, **observations)

    @classmethod
    def toolchain_missing(cls, text: str, **observations) -> "ExecutionOutcome":
        return cls(OutcomeKind.TOOLCHAIN_MISSING, text, **observations)

    @classmethod
    def runtime_error(cls, text: str, **observations) -> "ExecutionOutcome":
        return cls(OutcomeKind.RUNTIME_ERROR, text, **observations)
