"""Tests for the execution runner and its resource limits."""

from __future__ import annotations

import os
import shutil
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from codecollab.errors import ScratchDirectoryError, UnsupportedLanguageError
from codecollab.executor import InterpretedExecutor
from codecollab.executor.base import READER_GRACE_SECONDS
from codecollab.languages import Language, ToolchainRegistry
from codecollab.outcome import OutcomeKind
from codecollab.runner import ExecutionRunner, timeout_message


@pytest.fixture
def runner(tmp_path):
    registry = ToolchainRegistry().override(
        Language.PYTHON, InterpretedExecutor((sys.executable, "{source}"), ".py")
    )
    return ExecutionRunner(tmp_path / "scratch", registry=registry, timeout_ms=5000)


def test_success_captures_stdout(runner):
    outcome = runner.run("print('hello')", "python")
    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.text == "hello\n"
    assert outcome.exit_code == 0
    assert outcome.duration_ms is not None


def test_success_falls_back_to_stderr(runner):
    outcome = runner.run("import sys\nsys.stderr.write('warn')", "python")
    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.text == "warn"


def test_success_without_output(runner):
    assert runner.run("pass", Language.PYTHON).text == "No output"


def test_runtime_error_uses_display_filename(runner):
    outcome = runner.run("1 / 0", "python")
    assert outcome.kind is OutcomeKind.RUNTIME_ERROR
    assert "ZeroDivisionError" in outcome.text
    assert 'File "main.py"' in outcome.text
    assert "code_" not in outcome.text
    assert outcome.exit_code == 1


def test_artifacts_are_removed(runner):
    runner.run("print(1)", "python")
    runner.run("raise SystemExit(3)", "python")
    assert list(runner.scratch_dir.iterdir()) == []


def test_timeout_kills_the_process(runner):
    start = time.monotonic()
    outcome = runner.run("while True:\n    pass", "python", timeout_ms=300)
    elapsed = time.monotonic() - start
    assert outcome.kind is OutcomeKind.TIMED_OUT
    assert outcome.text == timeout_message(300)
    assert elapsed < 5
    assert list(runner.scratch_dir.iterdir()) == []


def test_blocking_input_read_does_not_hang(runner):
    outcome = runner.run("print(input())", "python", timeout_ms=2000)
    # stdin is closed, so input() fails immediately instead of waiting.
    assert outcome.kind is OutcomeKind.RUNTIME_ERROR
    assert "EOFError" in outcome.text


def test_output_cap_stops_the_process(runner):
    outcome = runner.run(
        "import sys\nwhile True:\n    sys.stdout.write('x' * 4096)",
        "python",
        max_output_bytes=10_000,
    )
    assert outcome.kind is OutcomeKind.RUNTIME_ERROR
    assert outcome.text == "Output exceeded the 10000 byte limit; the program was stopped."


def test_concurrent_runs_do_not_interfere(runner):
    sources = [f"print({n} * 2)" for n in range(8)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda code: runner.run(code, "python"), sources))
    assert [o.text.strip() for o in outcomes] == [str(n * 2) for n in range(8)]
    assert list(runner.scratch_dir.iterdir()) == []


def test_concurrent_runs_in_different_languages(runner):
    submissions = [
        ("print('from python')", "python"),
        ("a { color: red; }", "css"),
        ("<!DOCTYPE html>\n<p>hi</p>", "html"),
        ("print(sum(range(5)))", "python"),
    ]
    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(lambda item: runner.run(*item), submissions))
    assert [o.kind for o in outcomes] == [OutcomeKind.SUCCESS] * 4
    assert outcomes[0].text == "from python\n"
    assert outcomes[1].text.startswith("✓ CSS validated successfully!")
    assert outcomes[2].text.startswith("✓ HTML validated successfully!")
    assert outcomes[3].text == "10\n"
    assert list(runner.scratch_dir.iterdir()) == []


@pytest.mark.skipif(shutil.which("node") is None, reason="node is not installed")
def test_concurrent_python_and_javascript(runner):
    submissions = [("print(6 * 7)", "python"), ("console.log(6 * 7)", "javascript")]
    with ThreadPoolExecutor(max_workers=2) as pool:
        outcomes = list(pool.map(lambda item: runner.run(*item), submissions))
    assert [o.text for o in outcomes] == ["42\n", "42\n"]
    assert list(runner.scratch_dir.iterdir()) == []


def _process_gone(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    # An exited child may linger as a zombie until its new parent reaps it.
    stat = Path(f"/proc/{pid}/stat")
    try:
        return stat.read_text().rsplit(")", 1)[1].split()[0] == "Z"
    except (OSError, IndexError):
        return False


@pytest.mark.skipif(os.name == "nt", reason="process groups are POSIX only")
def test_background_children_do_not_outlive_the_run(runner):
    code = (
        "import subprocess, sys\n"
        "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)'])\n"
        "print(child.pid)\n"
    )
    start = time.monotonic()
    outcome = runner.run(code, "python")
    elapsed = time.monotonic() - start
    assert outcome.kind is OutcomeKind.SUCCESS
    pid = int(outcome.text.strip())

    deadline = time.monotonic() + 5
    while not _process_gone(pid) and time.monotonic() < deadline:
        time.sleep(0.05)
    assert _process_gone(pid)
    # The readers are not left waiting on pipes held open by the child.
    assert elapsed < 2 * READER_GRACE_SECONDS


def test_unsupported_language_touches_nothing(runner):
    with pytest.raises(UnsupportedLanguageError):
        runner.run("print(1)", "brainfuck")
    assert not runner.scratch_dir.exists()


def test_validate_only_language_spawns_nothing(runner):
    outcome = runner.run("<p>unclosed", "html")
    assert outcome.kind is OutcomeKind.VALIDATION_FAILED
    assert outcome.text.startswith("HTML Validation Error:\n")
    assert outcome.exit_code is None
    assert not runner.scratch_dir.exists()


def test_pre_validation_rejects_unbalanced_typescript(runner):
    outcome = runner.run("const a = [1, 2;", "typescript")
    assert outcome.kind is OutcomeKind.VALIDATION_FAILED
    assert outcome.text == "TypeScript Validation Error:\nUnclosed 1 bracket(s)"
    assert not runner.scratch_dir.exists()


def test_unusable_scratch_dir(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    registry = ToolchainRegistry().override(
        Language.PYTHON, InterpretedExecutor((sys.executable, "{source}"), ".py")
    )
    runner = ExecutionRunner(blocker / "scratch", registry=registry)
    with pytest.raises(ScratchDirectoryError):
        runner.run("print(1)", "python")


@pytest.mark.skipif(shutil.which("gcc") is None, reason="gcc is not installed")
def test_compiled_c_program(tmp_path):
    runner = ExecutionRunner(tmp_path)
    code = '#include <stdio.h>\nint main(void) { printf("%d\\n", 6 * 7); return 0; }\n'
    outcome = runner.run(code, "c")
    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.text == "42\n"
    assert list(tmp_path.iterdir()) == []


@pytest.mark.skipif(shutil.which("gcc") is None, reason="gcc is not installed")
def test_compile_error_is_a_runtime_error(tmp_path):
    runner = ExecutionRunner(tmp_path)
    outcome = runner.run("int main(void) { return x; }\n", "c")
    assert outcome.kind is OutcomeKind.RUNTIME_ERROR
    assert "main.c" in outcome.text
    assert list(tmp_path.iterdir()) == []


@pytest.mark.skipif(shutil.which("node") is None, reason="node is not installed")
def test_javascript_program(tmp_path):
    runner = ExecutionRunner(tmp_path)
    outcome = runner.run("console.log([1, 2, 3].map(x => x * 2).join(','))", "javascript")
    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.text == "2,4,6\n"
