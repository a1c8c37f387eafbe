"""Tests for the execution strategies themselves."""

from __future__ import annotations

import sys

from codecollab.artifacts import ArtifactScope, binary_suffix
from codecollab.executor import (
    CompiledExecutor,
    InterpretedExecutor,
    JavaExecutor,
    StrategyKind,
    ValidateOnlyExecutor,
    wrap_entry_point,
)
from codecollab.executor.base import MISSING_BINARY_EXIT_CODE, render
from codecollab.outcome import OutcomeKind
from codecollab.validators import validate_markup


def test_render_expands_placeholders():
    assert render(("gcc", "{source}", "-o", "{binary}"), source="a.c", binary="a") == [
        "gcc", "a.c", "-o", "a",
    ]


def test_interpreted_prepare_writes_source(tmp_path):
    executor = InterpretedExecutor(("python3", "{source}"), ".py")
    scope = ArtifactScope(tmp_path, "code_1")
    commands = executor.prepare(scope, "print(1)")
    source = tmp_path / "code_1.py"
    assert commands == [["python3", str(source)]]
    assert source.read_text() == "print(1)"
    executor.cleanup(scope)
    assert not source.exists()


def test_compiled_prepare_returns_compile_then_run(tmp_path):
    executor = CompiledExecutor(("gcc", "{source}", "-o", "{binary}"), ("{binary}",), ".c")
    assert executor.strategy is StrategyKind.COMPILED
    scope = ArtifactScope(tmp_path, "code_2")
    compile_cmd, run_cmd = executor.prepare(scope, "int main(void){return 0;}")
    binary = str(tmp_path / ("code_2" + binary_suffix()))
    assert compile_cmd == ["gcc", str(tmp_path / "code_2.c"), "-o", binary]
    assert run_cmd == [binary]


def test_java_prepare_uses_private_class_directory(tmp_path):
    executor = JavaExecutor()
    scope = ArtifactScope(tmp_path, "Main_1_1_abc123")
    compile_cmd, run_cmd = executor.prepare(scope, 'System.out.println("hi");')
    classes = tmp_path / "Main_1_1_abc123_classes"
    source = tmp_path / "Main_1_1_abc123.java"
    assert classes.is_dir()
    assert compile_cmd == ["javac", "-d", str(classes), str(source)]
    assert run_cmd == ["java", "-cp", str(classes), "Main_1_1_abc123"]
    assert "public class Main_1_1_abc123" in source.read_text()
    executor.cleanup(scope)
    assert list(tmp_path.iterdir()) == []


def test_wrap_entry_point_renames_public_class():
    source = "public class Hello {\n  public static void main(String[] a) {}\n}"
    wrapped = wrap_entry_point(source, "Main_x")
    assert wrapped.startswith("public class Main_x {")
    assert "Hello" not in wrapped


def test_wrap_entry_point_wraps_snippets_and_hoists_imports():
    source = "package demo;\nimport java.util.List;\n\nSystem.out.println(List.of(1));"
    wrapped = wrap_entry_point(source, "Main_y")
    assert wrapped.startswith("import java.util.List;\n\npublic class Main_y {\n")
    assert "package" not in wrapped
    assert "        System.out.println(List.of(1));" in wrapped
    assert "public static void main(String[] args)" in wrapped


def test_invoke_stops_at_first_failure(tmp_path):
    executor = InterpretedExecutor((sys.executable, "{source}"), ".py")
    commands = [
        [sys.executable, "-c", "import sys; print('first'); sys.exit(2)"],
        [sys.executable, "-c", "print('second')"],
    ]
    result = executor.invoke(commands, tmp_path, timeout=5, max_output_bytes=1024)
    assert result.exit_code == 2
    assert result.stdout == "first\n"


def test_invoke_concatenates_output_of_successful_steps(tmp_path):
    executor = InterpretedExecutor((sys.executable, "{source}"), ".py")
    commands = [
        [sys.executable, "-c", "print('compile')"],
        [sys.executable, "-c", "print('run')"],
    ]
    result = executor.invoke(commands, tmp_path, timeout=5, max_output_bytes=1024)
    assert result.exit_code == 0
    assert result.stdout == "compile\nrun\n"


def test_missing_binary_is_reported_like_a_shell(tmp_path):
    executor = InterpretedExecutor(("no-such-interpreter-xyz", "{source}"), ".txt")
    result = executor.invoke([["no-such-interpreter-xyz", "x"]], tmp_path, 5, 1024)
    assert result.exit_code == MISSING_BINARY_EXIT_CODE
    assert result.stderr == "no-such-interpreter-xyz: command not found"


def test_invoke_timeout_marks_result(tmp_path):
    executor = InterpretedExecutor((sys.executable, "{source}"), ".py")
    result = executor.invoke(
        [[sys.executable, "-c", "import time; time.sleep(30)"]], tmp_path, 0.3, 1024
    )
    assert result.timed_out
    assert not result.truncated


def test_validate_only_executor():
    executor = ValidateOnlyExecutor(validate_markup, "HTML", "fine")
    assert executor.strategy is StrategyKind.VALIDATE_ONLY
    ok = executor.check("<!DOCTYPE html><p></p>")
    assert ok.kind is OutcomeKind.SUCCESS
    assert ok.text == "fine"
    bad = executor.check("<!DOCTYPE html><p>")
    assert bad.kind is OutcomeKind.VALIDATION_FAILED
    assert bad.text == "HTML Validation Error:\nLine 1: Unclosed tag <p>"
