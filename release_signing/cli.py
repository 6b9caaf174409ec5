"""Command-line entry point for the release signing orchestrator.

Examples
--------
Sign the bundle built for the current machine::

    export ES_USERNAME=... ES_PASSWORD=... ES_CREDENTIAL_ID=... ES_TOTP_SECRET=...
    sign-release --build-root apps/desktop/src-tauri/target

Inside a GitHub Actions step the same inputs are read from ``INPUT_*``
variables::

    INPUT_BUILD_ROOT=apps/desktop/src-tauri/target INPUT_DRY_RUN=true sign-release
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import cyclopts
from cyclopts import App

from .correlation import new_run_id
from .environment import CredentialContext
from .output import prepare_output_data, write_github_output
from .pipeline import Orchestrator, SigningReport

__all__ = ["app", "main", "run"]

DEFAULT_BUILD_ROOT = "apps/desktop/src-tauri/target"

logger = logging.getLogger(__name__)

app: App = App(
    help="Sign the release bundle built for this platform.",
    config=cyclopts.config.Env("INPUT_", command=False),
)


def _coerce_bool(value: object, *, default: bool) -> bool:
    """Interpret GitHub input values as booleans.

    ``None`` or empty strings fall back to ``default``.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalised = value.strip().lower()
        if not normalised:
            return default
        if normalised in {"1", "true", "yes", "on"}:
            return True
        if normalised in {"0", "false", "no", "off"}:
            return False
    msg = f"Cannot interpret {value!r} as boolean"
    raise ValueError(msg)


def _normalize_input_env(prefix: str = "INPUT_") -> None:
    """Rename dashed ``INPUT_`` keys (``INPUT_DRY-RUN``) to underscore keys."""
    for key in [key for key in os.environ if key.startswith(prefix) and "-" in key]:
        value = os.environ.pop(key)
        os.environ.setdefault(key.replace("-", "_"), value)


def _report(report: SigningReport, run_id: str) -> None:
    """Print the run summary and export step outputs when available."""
    for command in report.planned:
        print(f"[dry-run] {' '.join(command)}", file=sys.stderr)

    if output_path := os.environ.get("GITHUB_OUTPUT"):
        write_github_output(Path(output_path), prepare_output_data(report, run_id))

    if report.error is not None:
        print(f"::error title=Signing Failure::{report.error}", file=sys.stderr)
        return
    print(f"Signing run {run_id} finished: {report.state.value}", file=sys.stderr)


@app.default
def main(
    *,
    build_root: str = DEFAULT_BUILD_ROOT,
    target_platform: str = "",
    dry_run: str = "false",
) -> None:
    """Sign the artefact for ``target_platform`` found beneath ``build_root``.

    Parameters
    ----------
    build_root
        Cargo target directory containing ``<triple>/release/bundle``.
    target_platform
        Platform id (``win32``, ``darwin``, ``linux``) whose artefact is
        signed. Defaults to the host platform.
    dry_run
        When true, resolve the artefact and print the masked commands
        without running them.

    Raises
    ------
    SystemExit
        Raised with exit code ``1`` when the run fails and ``130`` when it is
        interrupted.
    """
    try:
        dry = _coerce_bool(dry_run, default=False)
    except ValueError as exc:
        print(f"::error title=Signing Failure::{exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    run_id = new_run_id()
    orchestrator = Orchestrator(
        CredentialContext.from_env(),
        Path(build_root),
        platform_id=target_platform or None,
        dry_run=dry,
    )
    logger.info("Signing run %s for platform %s", run_id, orchestrator.platform_id)

    try:
        report = orchestrator.run()
    except KeyboardInterrupt as exc:
        print(
            "::warning title=Signing Interrupted::Run "
            f"{run_id} was interrupted; a remote signing or notarization "
            "request may still be in progress.",
            file=sys.stderr,
        )
        raise SystemExit(130) from exc

    _report(report, run_id)
    if report.exit_code:
        raise SystemExit(report.exit_code)


def run() -> None:
    """Console script entry point."""
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stderr)
    _normalize_input_env()
    app()


if __name__ == "__main__":
    run()
