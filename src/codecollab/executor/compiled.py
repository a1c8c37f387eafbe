"""
Executors for compile-then-run languages.

Compilation and execution are two commands sharing one timeout budget;
a failure at either stage ends the invocation.  Every artifact the
compiler produces is named after the scope's basename so the scope can
delete it afterwards.
"""

from __future__ import annotations

import re
from typing import List, Sequence

from ..artifacts import ArtifactScope, binary_suffix
from .base import CodeExecutor, StrategyKind, render


class CompiledExecutor(CodeExecutor):
    """Compile ``{source}`` to ``{binary}`` and then run the binary."""

    strategy = StrategyKind.COMPILED

    def __init__(
        self,
        compile_command: Sequence[str],
        run_command: Sequence[str],
        extension: str,
    ) -> None:
        super().__init__(extension)
        self.compile_command = tuple(compile_command)
        self.run_command = tuple(run_command)

    def prepare(self, scope: ArtifactScope, source: str) -> List[List[str]]:
        source_path = scope.write_source(self.extension, source)
        binary = scope.path(binary_suffix())
        values = {"source": str(source_path), "binary": str(binary)}
        return [render(self.compile_command, **values), render(self.run_command, **values)]


PUBLIC_CLASS_PATTERN = re.compile(r"public\s+class\s+(\w+)")
IMPORT_LINE_PATTERN = re.compile(r"^\s*(import|package)\s+[\w.*\s]+;\s*$")


def wrap_entry_point(source: str, class_name: str) -> str:
    """Make ``class_name`` the public class of a Java submission.

    A bare snippet is wrapped in a ``main`` method (leading ``import``
    lines are hoisted above the class); otherwise the first
    ``public class X`` declaration is renamed.
    """
    if PUBLIC_CLASS_PATTERN.search(source):
        return PUBLIC_CLASS_PATTERN.sub(f"public class {class_name}", source, count=1)

    lines = source.split("\n")
    header: List[str] = []
    while lines and (not lines[0].strip() or IMPORT_LINE_PATTERN.match(lines[0])):
        line = lines.pop(0)
        if line.strip() and not line.strip().startswith("package"):
            header.append(line.strip())
    body = "\n".join("        " + line for line in lines)
    wrapped = (
        f"public class {class_name} {{\n"
        f"    public static void main(String[] args) {{\n"
        f"{body}\n"
        f"    }}\n"
        f"}}"
    )
    if header:
        return "\n".join(header) + "\n\n" + wrapped
    return wrapped


class JavaExecutor(CompiledExecutor):
    """Compile into a per-invocation class directory and run the entry class.

    The entry class is named after the artifact basename, so concurrent
    invocations never fight over ``Main.class`` in the shared scratch
    directory.
    """

    artifact_prefix = "Main"

    def __init__(
        self,
        compile_command: Sequence[str] = ("javac", "-d", "{classes}", "{source}"),
        run_command: Sequence[str] = ("java", "-cp", "{classes}", "{entry}"),
    ) -> None:
        super().__init__(compile_command, run_command, ".java")

    def prepare(self, scope: ArtifactScope, source: str) -> List[List[str]]:
        class_name = scope.basename
        source_path = scope.write_source(self.extension, wrap_entry_point(source, class_name))
        classes = scope.path("_classes")
        classes.mkdir()
        values = {"source": str(source_path), "classes": str(classes), "entry": class_name}
        return [render(self.compile_command, **values), render(self.run_command, **values)]
