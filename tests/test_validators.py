"""
Tests for the static validators used by validate-only languages.

The validators are pure functions, so these tests feed them source text
directly and inspect the returned error lists.
"""

from __future__ import annotations

import pytest

from codecollab.validators import (
    scan_brackets,
    validate_brackets,
    validate_markup,
    validate_script,
    validate_stylesheet,
)


@pytest.mark.parametrize(
    "code",
    [
        "",
        "{[()]}",
        "function f(a) { return [a, '}']; }",
        'const s = "([{";\nconst t = `${s}`;',
        "if (x) {\n  y[0] = (1 + 2);\n}\n",
        "const q = 'it\\'s fine';",
    ],
)
def test_balanced_text_is_valid(code):
    result = validate_brackets(code)
    assert result.valid
    assert result.errors == []


def test_unmatched_closer_short_circuits():
    result = validate_brackets("a)\n}\n]")
    assert not result.valid
    assert result.errors == ["Line 1: Unmatched closing parenthesis ')'"]


def test_unmatched_brace_reports_its_line():
    result = validate_brackets("{\n}\n}")
    assert result.errors == ["Line 3: Unmatched closing brace '}'"]


def test_unclosed_counters_and_string_are_reported():
    result = validate_brackets("{ ( [ 'abc")
    assert not result.valid
    assert "Unclosed 1 brace(s)" in result.errors
    assert "Unclosed 1 parenthesis/parentheses" in result.errors
    assert "Unclosed 1 bracket(s)" in result.errors
    assert "Unclosed string literal" in result.errors


def test_script_validation_ignores_comments():
    code = "// don't count this }\nfunction f() {\n  /* or ( this */\n  return 1;\n}\n"
    assert validate_script(code).valid
    assert not validate_brackets(code).valid


def test_scan_records_last_open_brace_line():
    scan = scan_brackets("a {\n\nb {", openers="{")
    assert scan.counts["{"] == 2
    assert scan.last_open_line["{"] == 3


# ---------- Markup ----------

DOCTYPE = "<!DOCTYPE html>\n"


def test_valid_markup():
    code = DOCTYPE + "<html>\n<body>\n<p>Hello<br>world</p>\n<img src='a.png'/>\n</body>\n</html>"
    result = validate_markup(code)
    assert result.valid, result.errors


def test_single_unclosed_tag():
    code = DOCTYPE + "<p>intro</p>\n<div>\n<span>x</span>"
    result = validate_markup(code)
    assert result.errors == ["Line 3: Unclosed tag <div>"]


def test_mismatched_close_tag_keeps_the_stack():
    code = DOCTYPE + "<div>\n<p>text</span></p>\n</div>"
    result = validate_markup(code)
    assert result.errors == ["Line 3: Unmatched closing tag </span>"]


def test_stray_closing_tag():
    code = DOCTYPE + "<p>text</p>\n</span>"
    result = validate_markup(code)
    assert result.errors == ["Line 3: Unmatched closing tag </span>"]


def test_missing_doctype_does_not_stop_scanning():
    result = validate_markup("<div>")
    assert result.errors == ["Line 1: Unclosed tag <div>", "Missing DOCTYPE declaration"]


def test_doctype_is_case_insensitive_and_may_follow_comments():
    assert validate_markup("  <!-- header -->\n<!doctype html>\n<p></p>").valid


def test_tags_inside_comments_and_scripts_are_ignored():
    code = (
        DOCTYPE
        + "<!-- <div> -->\n"
        + "<script>\nif (a <b) { document.write('</p>'); }\n</script>\n"
        + "<p>ok</p>"
    )
    assert validate_markup(code).valid


# ---------- Stylesheets ----------


def test_simple_rule_is_valid():
    assert validate_stylesheet("a{color:red}").valid


def test_missing_closing_brace():
    result = validate_stylesheet("a{color:red")
    assert not result.valid
    assert any("unclosed brace" in error.lower() for error in result.errors)


def test_terminated_declarations_are_valid():
    assert validate_stylesheet("a{color:red;font-size:1px}").valid


def test_missing_semicolon():
    result = validate_stylesheet("a {\n  color:red font-size:1px\n}")
    assert not result.valid
    assert result.errors == ['Line 2: Missing semicolon after "color:red"']


def test_unmatched_closing_brace_stops_validation():
    result = validate_stylesheet("a{color:red}}\nb{color}")
    assert result.errors == ["Line 1: Unmatched closing brace '}'"]


def test_declaration_problems_are_reported_with_lines():
    code = "/* comment\nspanning lines */\nh1 {\n  color;\n  : blue;\n  margin: ;\n}"
    result = validate_stylesheet(code)
    assert result.errors == [
        'Line 4: Invalid declaration syntax - missing colon in "color"',
        "Line 5: Missing property name before colon",
        "Line 6: Missing property value after colon",
    ]


def test_empty_selector():
    result = validate_stylesheet("a{color:red}\n{color:blue}")
    assert result.errors == ["Line 2: Empty selector"]


def test_strings_urls_and_nested_rules_are_tolerated():
    code = (
        "@media screen and (max-width: 600px) {\n"
        "  .a:hover { background: url(data:image/png;base64,AAA); }\n"
        "}\n"
        'p::before { content: "a; b: c"; font: 12px/1.5 "Open Sans", sans-serif }\n'
    )
    result = validate_stylesheet(code)
    assert result.valid, result.errors


def test_unclosed_string_in_stylesheet():
    result = validate_stylesheet("a { content: 'oops }")
    assert "Unclosed string literal" in result.errors


@pytest.mark.parametrize(
    "code",
    [
        'a::before{content:"{"}',
        'a{content:"}"; color:red}',
        "q::after { content: '\\'}' }",
    ],
)
def test_braces_inside_strings_do_not_split_rules(code):
    result = validate_stylesheet(code)
    assert result.valid, result.errors


def test_rule_after_string_brace_is_still_checked():
    result = validate_stylesheet('a::before{content:"{"}\nb{color}')
    assert result.errors == ['Line 2: Invalid declaration syntax - missing colon in "color"']
