"""
Static validators for languages that are checked rather than executed.

Every validator is pure and total: malformed input produces entries in
:attr:`ValidationResult.errors`, never an exception.  Messages carry a
best-effort ``Line N:`` prefix computed by counting newlines up to the
offending offset.  Comment and raw-text blanking always preserves
newlines so those line numbers stay faithful to the submitted text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass
class ValidationResult:
    """Outcome of a static check.  An empty error list implies ``valid``."""

    valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=list(errors))


# opener -> (closer, noun used in messages, plural form used in messages)
BRACKET_PAIRS: Dict[str, Tuple[str, str, str]] = {
    "{": ("}", "brace", "brace(s)"),
    "(": (")", "parenthesis", "parenthesis/parentheses"),
    "[": ("]", "bracket", "bracket(s)"),
}

SCRIPT_QUOTES = "\"'`"
STYLE_QUOTES = "\"'"


@dataclass
class BracketScan:
    """Raw observations of :func:`scan_brackets`."""

    counts: Dict[str, int]
    last_open_line: Dict[str, int]
    in_string: bool = False
    unmatched: Optional[str] = None


def _line_at(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _blank(text: str) -> str:
    return re.sub(r"[^\n]", " ", text)


def scan_brackets(
    text: str,
    quotes: str = SCRIPT_QUOTES,
    openers: str = "{([",
    skip_comments: bool = False,
) -> BracketScan:
    """Walk ``text`` tracking string-literal mode and one counter per opener.

    Scanning stops at the first closer that would drive its counter
    negative; ``unmatched`` then holds the error message.
    """
    counts = {opener: 0 for opener in openers}
    last_open = {opener: 0 for opener in openers}
    closers = {BRACKET_PAIRS[opener][0]: opener for opener in openers}
    scan = BracketScan(counts=counts, last_open_line=last_open)

    line = 1
    string_char: Optional[str] = None
    i = 0
    n = len(text)
    while i < n:
        char = text[i]
        if char == "\n":
            line += 1
        if string_char is not None:
            if char == "\\" and i + 1 < n:
                if text[i + 1] == "\n":
                    line += 1
                i += 2
                continue
            if char == string_char:
                string_char = None
            i += 1
            continue
        if skip_comments and char == "/" and i + 1 < n and text[i + 1] in "/*":
            if text[i + 1] == "/":
                end = text.find("\n", i)
                i = n if end == -1 else end
            else:
                end = text.find("*/", i + 2)
                stop = n if end == -1 else end + 2
                line += text.count("\n", i, stop)
                i = stop
            continue
        if char in quotes:
            string_char = char
        elif char in counts:
            counts[char] += 1
            last_open[char] = line
        elif char in closers:
            opener = closers[char]
            counts[opener] -= 1
            if counts[opener] < 0:
                noun = BRACKET_PAIRS[opener][1]
                scan.unmatched = f"Line {line}: Unmatched closing {noun} '{char}'"
                return scan
        i += 1

    scan.in_string = string_char is not None
    return scan


def validate_brackets(code: str, skip_comments: bool = False) -> ValidationResult:
    """Check brace, parenthesis and bracket balance outside string literals."""
    scan = scan_brackets(code, SCRIPT_QUOTES, "{([", skip_comments=skip_comments)
    if scan.unmatched:
        return ValidationResult(valid=False, errors=[scan.unmatched])
    errors = []
    for opener, count in scan.counts.items():
        if count > 0:
            errors.append(f"Unclosed {count} {BRACKET_PAIRS[opener][2]}")
    if scan.in_string:
        errors.append("Unclosed string literal")
    return ValidationResult.from_errors(errors)


def validate_script(code: str) -> ValidationResult:
    """Balance check for C-family scripts; ``//`` and ``/* */`` comments are ignored."""
    return validate_brackets(code, skip_comments=True)


# ---------- Markup ----------

SELF_CLOSING_TAGS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "link", "meta", "param", "source", "track", "wbr",
    }
)

TAG_PATTERN = re.compile(r"<\/?([a-zA-Z][a-zA-Z0-9]*)\b[^>]*>")
COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.S)
RAW_TEXT_PATTERN = re.compile(r"(<(script|style)\b[^>]*>)(.*?)(</\2\s*>)", re.S | re.I)
DOCTYPE_PATTERN = re.compile(r"\s*(?:<!--.*?-->\s*)*<!doctype\b", re.S | re.I)


def validate_markup(code: str) -> ValidationResult:
    """Check that HTML tags are balanced and a doctype leads the document."""
    text = COMMENT_PATTERN.sub(lambda m: _blank(m.group(0)), code)
    text = RAW_TEXT_PATTERN.sub(
        lambda m: m.group(1) + _blank(m.group(3)) + m.group(4), text
    )

    errors: List[str] = []
    open_tags: List[Tuple[str, int]] = []
    for match in TAG_PATTERN.finditer(text):
        tag = match.group(1).lower()
        raw = match.group(0)
        if raw.endswith("/>") or tag in SELF_CLOSING_TAGS:
            continue
        line = _line_at(text, match.start())
        if raw.startswith("</"):
            # Mismatches leave the stack untouched.
            if open_tags and open_tags[-1][0] == tag:
                open_tags.pop()
            else:
                errors.append(f"Line {line}: Unmatched closing tag </{tag}>")
        else:
            open_tags.append((tag, line))

    for tag, line in open_tags:
        errors.append(f"Line {line}: Unclosed tag <{tag}>")

    if not DOCTYPE_PATTERN.match(code):
        errors.append("Missing DOCTYPE declaration")

    return ValidationResult.from_errors(errors)


# ---------- Stylesheets ----------

BLOCK_COMMENT_PATTERN = re.compile(r"/\*.*?\*/", re.S)
RULE_PATTERN = re.compile(r"([^{}]*)\{([^{}]*)\}")
NEXT_PROPERTY_PATTERN = re.compile(r"\s(-?[a-zA-Z][a-zA-Z0-9-]*)\s*:")


def _split_declarations(body: str) -> List[Tuple[int, str]]:
    """Split a declaration block on semicolons outside strings and parentheses.

    Returns ``(offset, declaration)`` pairs; offsets point at the first
    non-blank character of each declaration within ``body``.
    """
    parts: List[Tuple[int, str]] = []
    start = 0
    quote: Optional[str] = None
    depth = 0
    i = 0
    while i < len(body):
        char = body[i]
        if quote is not None:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in STYLE_QUOTES:
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")" and depth:
            depth -= 1
        elif char == ";" and not depth:
            parts.append((start, body[start:i]))
            start = i + 1
        i += 1
    parts.append((start, body[start:]))

    declarations = []
    for offset, raw in parts:
        stripped = raw.strip()
        if stripped:
            declarations.append((offset + len(raw) - len(raw.lstrip()), stripped))
    return declarations


def _mask_strings(text: str) -> str:
    """Blank the inside of quoted strings, keeping offsets and newlines."""
    masked = []
    quote: Optional[str] = None
    escaped = False
    for char in text:
        if quote is None:
            if char in STYLE_QUOTES:
                quote = char
            masked.append(char)
        elif escaped:
            escaped = False
            masked.append("\n" if char == "\n" else " ")
        elif char == "\\":
            escaped = True
            masked.append(" ")
        elif char == quote:
            quote = None
            masked.append(char)
        else:
            masked.append("\n" if char == "\n" else " ")
    return "".join(masked)


def _mask_nested(value: str) -> str:
    """Blank out quoted strings and parenthesised groups (``url(...)`` etc.)."""
    masked = []
    quote: Optional[str] = None
    depth = 0
    for char in value:
        if quote is not None:
            masked.append(" ")
            if char == quote:
                quote = None
        elif char in STYLE_QUOTES:
            quote = char
            masked.append(" ")
        elif char == "(":
            depth += 1
            masked.append(" ")
        elif char == ")" and depth:
            depth -= 1
            masked.append(" ")
        else:
            masked.append(" " if depth else char)
    return "".join(masked)


def _check_declaration(declaration: str, line: int) -> List[str]:
    if ":" not in declaration:
        return [f'Line {line}: Invalid declaration syntax - missing colon in "{declaration}"']

    errors = []
    colon = declaration.index(":")
    prop = declaration[:colon].strip()
    value = declaration[colon + 1:].strip()
    if not prop:
        errors.append(f"Line {line}: Missing property name before colon")
    if not value:
        errors.append(f"Line {line}: Missing property value after colon")
        return errors

    rest = declaration[colon + 1:]
    follower = NEXT_PROPERTY_PATTERN.search(_mask_nested(rest))
    if follower and rest[: follower.start()].strip():
        head = declaration[: colon + 1 + follower.start()].strip()
        errors.append(f'Line {line}: Missing semicolon after "{head}"')
    return errors


def validate_stylesheet(code: str) -> ValidationResult:
    """Check brace balance and the shape of every ``selector { ... }`` rule."""
    text = BLOCK_COMMENT_PATTERN.sub(lambda m: _blank(m.group(0)), code)

    scan = scan_brackets(text, STYLE_QUOTES, "{")
    if scan.unmatched:
        return ValidationResult(valid=False, errors=[scan.unmatched])

    errors: List[str] = []
    unclosed = scan.counts["{"]
    if unclosed > 0:
        errors.append(
            f"Line {scan.last_open_line['{']}: Unclosed brace - "
            f"missing {unclosed} closing brace(s)"
        )

    # Braces inside strings do not delimit rules.
    for match in RULE_PATTERN.finditer(_mask_strings(text)):
        raw_selector = text[match.start(1):match.end(1)]
        selector = raw_selector.strip()
        if selector:
            selector_start = match.start(1) + len(raw_selector) - len(raw_selector.lstrip())
            rule_line = _line_at(text, selector_start)
        else:
            rule_line = _line_at(text, match.end(1))
            errors.append(f"Line {rule_line}: Empty selector")

        body_start = match.start(2)
        for offset, declaration in _split_declarations(text[body_start:match.end(2)]):
            errors.extend(_check_declaration(declaration, _line_at(text, body_start + offset)))

    if scan.in_string:
        errors.append("Unclosed string literal")

    return ValidationResult.from_errors(errors)
