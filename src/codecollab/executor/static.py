"""
Strategy for languages that are validated in-process instead of executed.

No file is written and no process is spawned; the submission is handed
to a pure validator from :mod:`codecollab.validators`.
"""

from __future__ import annotations

from typing import Callable

from ..outcome import ExecutionOutcome
from ..validators import ValidationResult
from .base import StrategyKind


Validator = Callable[[str], ValidationResult]


def validation_message(label: str, result: ValidationResult) -> str:
    return f"{label} Validation Error:\n" + "\n".join(result.errors)


class ValidateOnlyExecutor:
    """Check a submission statically and return a canned success message."""

    strategy = StrategyKind.VALIDATE_ONLY

    def __init__(self, validator: Validator, label: str, success_message: str) -> None:
        self.validator = validator
        self.label = label
        self.success_message = success_message

    def check(self, source: str) -> ExecutionOutcome:
        result = self.validator(source)
        if result.valid:
            return ExecutionOutcome.success(self.success_message)
        return ExecutionOutcome.validation_failed(validation_message(self.label, result))
