"""Tests for :mod:`release_signing.cmd_utils`."""

from __future__ import annotations

import sys

import pytest
from plumbum import local

from release_signing.cmd_utils import (
    REDACTED,
    RunResult,
    coerce_run_result,
    redact_text,
    run_cmd,
)


def _python_command(*args: str) -> object:
    command = local[sys.executable]
    return command[list(args)] if args else command


def test_run_cmd_returns_run_result(capsys: pytest.CaptureFixture[str]) -> None:
    """run_cmd surfaces exit status and both streams."""
    script = "import sys; sys.stdout.write('world'); sys.stderr.write('!')"
    result = run_cmd(_python_command("-c", script))

    assert result == RunResult(0, "world", "!")
    echoed = capsys.readouterr()
    assert "$ " in echoed.out


def test_run_cmd_returns_non_zero_status() -> None:
    """A failing command is reported, not raised."""
    script = "import sys; sys.stderr.write('error message'); sys.exit(5)"

    result = run_cmd(_python_command("-c", script))

    assert result.returncode == 5
    assert result.stdout == ""
    assert "error message" in result.stderr


def test_run_cmd_rejects_non_plumbum_inputs() -> None:
    """Passing non-plumbum objects should raise :class:`TypeError`."""
    with pytest.raises(TypeError, match="plumbum command"):
        run_cmd(object())


def test_run_cmd_masks_secrets_in_echo(capsys: pytest.CaptureFixture[str]) -> None:
    """The echoed command line never shows redacted values."""
    script = "import sys; sys.stdout.write('ok')"
    run_cmd(
        _python_command("-c", script, "-password=hunter2"),
        redact=["hunter2"],
    )

    echoed = capsys.readouterr().out
    assert "hunter2" not in echoed
    assert f"-password={REDACTED}" in echoed


def test_run_cmd_merges_runtime_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Dynamic environment changes should be visible to executed commands."""
    monkeypatch.setenv("SIGNING_UTILS_TOKEN", "runtime")
    script = "import os, sys; sys.stdout.write(os.environ['SIGNING_UTILS_TOKEN'])"

    result = run_cmd(_python_command("-c", script))

    assert result.stdout == "runtime"


def test_coerce_run_result_decodes_bytes() -> None:
    """Binary payloads are decoded to text."""
    assert coerce_run_result((0, b"out", b"err")) == RunResult(0, "out", "err")
    assert coerce_run_result((1, None, "")) == RunResult(1, "", "")


def test_coerce_run_result_keeps_text_verbatim() -> None:
    """Captured text that looks like a bytes literal is relayed unchanged."""
    result = coerce_run_result((0, "b'\\xff'", "b'warn'"))
    assert result == RunResult(0, "b'\\xff'", "b'warn'")


@pytest.mark.parametrize(
    ("text", "secrets", "expected"),
    [
        ("user=bot pass=pw", ["pw"], f"user=bot pass={REDACTED}"),
        ("token abcdef", ["abc", "abcdef"], f"token {REDACTED}"),
        ("nothing here", ["", "zzz"], "nothing here"),
    ],
)
def test_redact_text(text: str, secrets: list[str], expected: str) -> None:
    """Every secret is masked, longest first, and blanks are ignored."""
    assert redact_text(text, secrets) == expected
