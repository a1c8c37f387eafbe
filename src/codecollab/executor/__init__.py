"""
Execution strategies for the code execution engine.

This package exposes one strategy per execution style.  The toolchain
registry (:mod:`codecollab.languages`) binds each supported language to
an instance of one of them:

* ``InterpretedExecutor`` – writes the source and runs an interpreter on it.
* ``CompiledExecutor`` / ``JavaExecutor`` – compile, then run the artifact.
* ``ValidateOnlyExecutor`` – static check only, no process is spawned.

Process-spawning strategies implement the ``CodeExecutor`` interface from
``base.py``.
"""

from .base import CodeExecutor, ProcessResult, StrategyKind
from .compiled import CompiledExecutor, JavaExecutor, wrap_entry_point
from .interpreted import InterpretedExecutor
from .static import ValidateOnlyExecutor, validation_message

__all__ = [
    "CodeExecutor",
    "ProcessResult",
    "StrategyKind",
    "CompiledExecutor",
    "JavaExecutor",
    "wrap_entry_point",
    "InterpretedExecutor",
    "ValidateOnlyExecutor",
    "validation_message",
]
