r"""Blocking plumbum command execution for the signing tools.

This module provides :func:`run_cmd`, the single place where the signing
mechanisms launch external processes. Every invocation is echoed before
execution with secrets masked, runs in the foreground of the orchestrator
until the child exits, and returns a :class:`RunResult` with the exit status
and captured output instead of raising on non-zero exits.

Examples
--------
Running a command and inspecting its status::

    >>> from plumbum import local
    >>> result = run_cmd(local["echo"]["hello"])
    $ echo hello
    >>> result.returncode, result.stdout
    (0, 'hello\n')

Masking a secret in the echoed command line::

    >>> run_cmd(local["echo"]["-password=hunter2"], redact=["hunter2"])
    $ echo -password=***
    RunResult(returncode=0, stdout='-password=hunter2\n', stderr='')
"""

from __future__ import annotations

import collections.abc as cabc
import os
import typing as typ

import typer
from plumbum import local

REDACTED = "***"


class RunResult(typ.NamedTuple):
    """Structured representation of plumbum ``run`` results."""

    returncode: int
    stdout: str
    stderr: str


@typ.runtime_checkable
class SupportsFormulate(typ.Protocol):
    """Objects that expose a shell representation via ``formulate``."""

    def formulate(self) -> cabc.Sequence[str]:  # pragma: no cover - protocol
        ...


@typ.runtime_checkable
class SupportsRun(SupportsFormulate, typ.Protocol):
    """Commands that implement :meth:`run`."""

    def run(
        self, *args: object, **run_kwargs: object
    ) -> object:  # pragma: no cover - protocol
        ...


@typ.runtime_checkable
class SupportsWithEnv(SupportsFormulate, typ.Protocol):
    """Commands that support environment overrides via :meth:`with_env`."""

    def with_env(self, **env: str) -> SupportsWithEnv:  # pragma: no cover - protocol
        ...


def _ensure_text(value: str | bytes | None) -> str:
    """Return ``value`` as a decoded ``str`` replacing undecodable bytes."""
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return value.decode("utf-8", errors="replace")


def redact_text(text: str, secrets: cabc.Iterable[str]) -> str:
    """Return ``text`` with every non-empty entry of ``secrets`` masked."""
    # Longest first so a secret containing another is masked whole.
    for secret in sorted({s for s in secrets if s}, key=len, reverse=True):
        text = text.replace(secret, REDACTED)
    return text


def formulate_redacted(
    command: SupportsFormulate, secrets: cabc.Iterable[str] = ()
) -> list[str]:
    """Return the argv of ``command`` with ``secrets`` masked."""
    masked = list(secrets)
    return [redact_text(str(part), masked) for part in command.formulate()]


def coerce_run_result(
    result: RunResult | cabc.Sequence[object],
) -> RunResult:
    """Normalise *result* into a :class:`RunResult`."""
    if isinstance(result, RunResult):
        return result
    try:
        returncode_obj, stdout_obj, stderr_obj = result  # type: ignore[misc]
    except ValueError as exc:
        msg = "plumbum run() results must unpack into (returncode, stdout, stderr)"
        raise TypeError(msg) from exc
    return RunResult(
        int(typ.cast("int", returncode_obj)),
        _ensure_text(typ.cast("str | bytes | None", stdout_obj)),
        _ensure_text(typ.cast("str | bytes | None", stderr_obj)),
    )


def _collect_runtime_env() -> dict[str, str] | None:
    """Return the process environment when it drifted from plumbum's snapshot."""
    plumbum_env = typ.cast("cabc.Mapping[str, str]", local.env)
    base_env = {key: str(value) for key, value in plumbum_env.items()}
    runtime_env = base_env | {key: str(value) for key, value in os.environ.items()}
    return None if runtime_env == base_env else runtime_env


def run_cmd(
    cmd: object,
    *,
    redact: cabc.Iterable[str] = (),
) -> RunResult:
    """Echo ``cmd`` with ``redact`` masked, run it to completion, return status.

    The call blocks until the child process exits; no timeout is applied so
    long-running services (notarization) decide their own deadlines. Non-zero
    exit codes are returned rather than raised so callers can attach the
    captured output to their failure reports.
    """
    if not isinstance(cmd, SupportsRun):
        msg = "run_cmd requires a plumbum command invocation"
        raise TypeError(msg)

    typer.echo(f"$ {' '.join(formulate_redacted(cmd, redact))}")

    prepared: SupportsFormulate = cmd
    if (runtime_env := _collect_runtime_env()) is not None and isinstance(
        cmd, SupportsWithEnv
    ):
        prepared = typ.cast("SupportsFormulate", cmd.with_env(**runtime_env))

    raw_result = typ.cast("SupportsRun", prepared).run(retcode=None)
    return coerce_run_result(typ.cast("cabc.Sequence[object]", raw_result))


__all__ = [
    "REDACTED",
    "RunResult",
    "SupportsFormulate",
    "SupportsRun",
    "coerce_run_result",
    "formulate_redacted",
    "redact_text",
    "run_cmd",
]
