"""
Classification of failed invocations.

A failed run is either an environment defect (the interpreter or
compiler itself is missing) or a defect in the submitted code.  The two
are told apart by matching the diagnostic text against the
:data:`TOOLCHAINS` table; adding a language means adding a row, not a
branch.  Code errors are passed through the per-language
:data:`NORMALIZERS` so messages read consistently across toolchains.

Matching is best-effort string matching.  Anything unrecognised falls
through as a plain runtime error with its text untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Pattern, Sequence, Tuple

from .languages import Language
from .outcome import ExecutionOutcome


@dataclass(frozen=True)
class ToolchainProfile:
    """Detection patterns and install instructions for one language."""

    binaries: Tuple[str, ...]
    remediation: str
    extra_patterns: Tuple[str, ...] = ()
    patterns: Tuple[Pattern, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        compiled: List[Pattern] = []
        for binary in self.binaries:
            name = re.escape(binary)
            compiled.extend(
                re.compile(p)
                for p in (
                    rf"(?:^|[\s/'\"]){name}(?:\.exe)?['\"]?: (?:command )?not found",
                    rf"'{name}(?:\.exe)?' is not recognized",
                    rf"spawn {name} ENOENT",
                    rf"No such file or directory: '{name}'",
                )
            )
        compiled.extend(re.compile(p, re.S) for p in self.extra_patterns)
        object.__setattr__(self, "patterns", tuple(compiled))

    def matches(self, diagnostic: str) -> bool:
        return any(pattern.search(diagnostic) for pattern in self.patterns)


TOOLCHAINS: Dict[Language, ToolchainProfile] = {
    Language.PYTHON: ToolchainProfile(
        ("python3", "python"),
        "Python is not installed. Please install Python:\n"
        "  Windows: Download from https://www.python.org/downloads/\n"
        "  Mac: brew install python\n"
        "  Linux: sudo apt-get install python3",
    ),
    Language.JAVASCRIPT: ToolchainProfile(
        ("node",),
        "Node.js is not installed. Please install Node.js from https://nodejs.org/",
    ),
    Language.TYPESCRIPT: ToolchainProfile(
        ("npx", "ts-node"),
        "TypeScript/ts-node is not installed. Please install:\n"
        "  npm install -g typescript ts-node",
        extra_patterns=(r"Cannot find module.*ts-node", r"ts-node.*not found"),
    ),
    Language.GO: ToolchainProfile(
        ("go",),
        "Go is not installed. Please install Go:\n"
        "  Windows: Download from https://go.dev/dl/\n"
        "  Mac: brew install go\n"
        "  Linux: sudo apt-get install golang",
    ),
    Language.RUST: ToolchainProfile(
        ("rustc",),
        "Rust is not installed. Please install Rust:\n"
        "  All platforms: Visit https://rustup.rs/ and run the installer",
    ),
    Language.PHP: ToolchainProfile(
        ("php",),
        "PHP is not installed. Please install PHP:\n"
        "  Windows: Download from https://windows.php.net/download/\n"
        "  Mac: brew install php\n"
        "  Linux: sudo apt-get install php",
    ),
    Language.RUBY: ToolchainProfile(
        ("ruby",),
        "Ruby is not installed. Please install Ruby:\n"
        "  Windows: Download from https://rubyinstaller.org/\n"
        "  Mac: brew install ruby\n"
        "  Linux: sudo apt-get install ruby",
    ),
    Language.CPP: ToolchainProfile(
        ("g++",),
        "g++ compiler is not installed. Please install:\n"
        "  Windows: Install MinGW or use Visual Studio\n"
        "  Mac: xcode-select --install\n"
        "  Linux: sudo apt-get install g++",
    ),
    Language.C: ToolchainProfile(
        ("gcc",),
        "gcc compiler is not installed. Please install:\n"
        "  Windows: Install MinGW or use Visual Studio\n"
        "  Mac: xcode-select --install\n"
        "  Linux: sudo apt-get install gcc",
    ),
    Language.JAVA: ToolchainProfile(
        ("javac", "java"),
        "Java JDK is not installed. Please install:\n"
        "  Windows: Download from https://adoptium.net/\n"
        "  Mac: brew install openjdk\n"
        "  Linux: sudo apt-get install default-jdk",
    ),
}


Rewrite = Tuple[Pattern, str]


def _rules(*pairs: Tuple[str, str]) -> Tuple[Rewrite, ...]:
    return tuple((re.compile(pattern), replacement) for pattern, replacement in pairs)


NORMALIZERS: Dict[Language, Sequence[Rewrite]] = {
    Language.TYPESCRIPT: _rules((r"Error: ", ""), (r"TS\d+:", "TypeScript Error: ")),
    Language.GO: _rules((r"go run: ", ""), (r"# command-line-arguments\n", "")),
    Language.RUST: _rules((r"error\[E\d+\]:", "Error: "), (r"--> ", "")),
    Language.PHP: _rules((r"PHP (Parse|Fatal|Warning|Notice) error:", r"\1 Error:")),
    Language.RUBY: _rules((r"in `<main>':", "")),
    Language.C: _rules((r"error: ", ""), (r"warning: ", "Warning: ")),
    Language.CPP: _rules((r"error: ", ""), (r"warning: ", "Warning: ")),
    Language.JAVA: _rules((r"error: ", ""), (r'Exception in thread "main"', "Error:")),
}


def missing_toolchain_message(remediation: str) -> str:
    return (
        f"❌ Runtime Not Found\n\n{remediation}\n\n"
        "After installation, restart the server and try again."
    )


def normalize(language: Language, diagnostic: str) -> str:
    for pattern, replacement in NORMALIZERS.get(language, ()):
        diagnostic = pattern.sub(replacement, diagnostic)
    return diagnostic


def classify(language: Language, raw: str, **observations) -> ExecutionOutcome:
    """Turn a failed invocation's diagnostic into a classified outcome."""
    profile = TOOLCHAINS.get(language)
    if profile is not None and profile.matches(raw):
        return ExecutionOutcome.toolchain_missing(
            missing_toolchain_message(profile.remediation), **observations
        )
    return ExecutionOutcome.runtime_error(normalize(language, raw), **observations)
