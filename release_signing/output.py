"""GitHub Actions step outputs describing a signing run."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .pipeline import SigningReport

__all__ = ["prepare_output_data", "write_github_output"]


def prepare_output_data(report: SigningReport, run_id: str) -> dict[str, str]:
    """Return the step outputs for ``report``.

    ``signed_artifact`` is only present when an artefact was resolved.
    """
    values = {"signing_state": report.state.value, "signing_run_id": run_id}
    if report.artifact is not None:
        values["signed_artifact"] = report.artifact.path.as_posix()
    return values


def _format_scalar_output(key: str, value: str) -> str:
    escaped = value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    return f"{key}={escaped}\n"


def write_github_output(file: Path, values: dict[str, str]) -> None:
    """Append ``values`` to the ``GITHUB_OUTPUT`` ``file`` in sorted key order."""
    file.parent.mkdir(parents=True, exist_ok=True)
    with file.open("a", encoding="utf-8") as handle:
        for key, value in sorted(values.items()):
            handle.write(_format_scalar_output(key, value))
