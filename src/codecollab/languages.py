"""Toolchain registry: which strategy runs each supported language."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Mapping, Optional, Union

from .errors import UnsupportedLanguageError
from .executor import (
    CodeExecutor,
    CompiledExecutor,
    InterpretedExecutor,
    JavaExecutor,
    StrategyKind,
    ValidateOnlyExecutor,
)
from .validators import ValidationResult, validate_markup, validate_script, validate_stylesheet


class Language(str, Enum):
    PYTHON = "python"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    C = "c"
    CPP = "cpp"
    JAVA = "java"
    GO = "go"
    RUST = "rust"
    PHP = "php"
    RUBY = "ruby"
    HTML = "html"
    CSS = "css"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Language"]:
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


Executor = Union[CodeExecutor, ValidateOnlyExecutor]


@dataclass(frozen=True)
class LanguageSpec:
    """Registry entry for one language.

    ``filename`` is the name shown to users in place of the generated
    artifact path when diagnostics are reported.
    """

    language: Language
    display_name: str
    filename: str
    executor: Executor
    pre_validator: Optional[Callable[[str], ValidationResult]] = None

    @property
    def strategy(self) -> StrategyKind:
        return self.executor.strategy


HTML_SUCCESS = (
    "✓ HTML validated successfully!\n\n"
    "Open this file in a browser to view the result.\n"
    "You can also use it in your web project."
)
CSS_SUCCESS = (
    "✓ CSS validated successfully!\n\n"
    "Link this stylesheet in your HTML:\n"
    '<link rel="stylesheet" href="styles.css">'
)


def _default_specs() -> Dict[Language, LanguageSpec]:
    specs = [
        LanguageSpec(Language.PYTHON, "Python", "main.py",
                     InterpretedExecutor(("python3", "{source}"), ".py")),
        LanguageSpec(Language.JAVASCRIPT, "JavaScript", "main.js",
                     InterpretedExecutor(("node", "{source}"), ".js")),
        LanguageSpec(Language.TYPESCRIPT, "TypeScript", "main.ts",
                     InterpretedExecutor(("npx", "ts-node", "{source}"), ".ts"),
                     pre_validator=validate_script),
        LanguageSpec(Language.GO, "Go", "main.go",
                     InterpretedExecutor(("go", "run", "{source}"), ".go")),
        LanguageSpec(Language.PHP, "PHP", "main.php",
                     InterpretedExecutor(("php", "{source}"), ".php")),
        LanguageSpec(Language.RUBY, "Ruby", "main.rb",
                     InterpretedExecutor(("ruby", "{source}"), ".rb")),
        LanguageSpec(Language.C, "C", "main.c",
                     CompiledExecutor(("gcc", "{source}", "-o", "{binary}"), ("{binary}",), ".c")),
        LanguageSpec(Language.CPP, "C++", "main.cpp",
                     CompiledExecutor(("g++", "{source}", "-o", "{binary}"), ("{binary}",), ".cpp")),
        LanguageSpec(Language.RUST, "Rust", "main.rs",
                     CompiledExecutor(("rustc", "{source}", "-o", "{binary}"), ("{binary}",), ".rs")),
        LanguageSpec(Language.JAVA, "Java", "Main.java", JavaExecutor()),
        LanguageSpec(Language.HTML, "HTML", "index.html",
                     ValidateOnlyExecutor(validate_markup, "HTML", HTML_SUCCESS)),
        LanguageSpec(Language.CSS, "CSS", "styles.css",
                     ValidateOnlyExecutor(validate_stylesheet, "CSS", CSS_SUCCESS)),
    ]
    return {spec.language: spec for spec in specs}


class ToolchainRegistry:
    """Immutable mapping from :class:`Language` to :class:`LanguageSpec`."""

    def __init__(self, specs: Optional[Mapping[Language, LanguageSpec]] = None) -> None:
        self._specs: Dict[Language, LanguageSpec] = dict(specs or _default_specs())

    def resolve(self, language: Union[str, Language, None]) -> LanguageSpec:
        parsed = language if isinstance(language, Language) else Language.parse(language)
        if parsed is None or parsed not in self._specs:
            raise UnsupportedLanguageError(str(language))
        return self._specs[parsed]

    def override(self, language: Language, executor: Executor) -> "ToolchainRegistry":
        """Return a copy of the registry with ``language`` bound to ``executor``."""
        specs = dict(self._specs)
        specs[language] = replace(specs[language], executor=executor)
        return ToolchainRegistry(specs)

    def languages(self) -> list:
        return list(self._specs)
