"""Pytest configuration for the release signing tests."""

from __future__ import annotations

import sys
import typing as typ
from pathlib import Path

import pytest

from release_signing.environment import CREDENTIAL_ENV_VARS, CredentialContext
from release_signing.platforms import get_profile
from release_signing.resolution import ResolvedArtifact, resolve
from tests._helpers import APPLE_SECRETS, HSM_SECRETS


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real signing secrets and CLI arguments out of every test."""
    for variable in CREDENTIAL_ENV_VARS.values():
        monkeypatch.delenv(variable, raising=False)
    monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
    monkeypatch.setattr(sys, "argv", ["sign-release"])


@pytest.fixture
def hsm_creds() -> CredentialContext:
    """Return a context holding only the four HSM secrets."""
    return CredentialContext(HSM_SECRETS)


@pytest.fixture
def apple_creds() -> CredentialContext:
    """Return a context holding only the Apple secrets."""
    return CredentialContext(APPLE_SECRETS)


@pytest.fixture
def windows_build_root(tmp_path: Path) -> Path:
    """Return a build root containing one NSIS installer."""
    build_root = tmp_path / "out"
    bundle_dir = build_root / "x86_64-pc-windows-msvc" / "release" / "bundle" / "nsis"
    bundle_dir.mkdir(parents=True)
    (bundle_dir / "overlayed_1.2.0.exe").write_bytes(b"MZ")
    return build_root


@pytest.fixture
def windows_artifact(windows_build_root: Path) -> ResolvedArtifact:
    """Return the resolved Windows installer from ``windows_build_root``."""
    return resolve(get_profile("win32"), windows_build_root)


@pytest.fixture
def macos_artifact(tmp_path: Path) -> ResolvedArtifact:
    """Return a resolved ``.app`` bundle directory."""
    build_root = tmp_path / "out"
    app_dir = (
        build_root
        / "aarch64-apple-darwin"
        / "release"
        / "bundle"
        / "macos"
        / "overlayed.app"
    )
    (app_dir / "Contents" / "MacOS").mkdir(parents=True)
    return resolve(get_profile("darwin"), build_root)


if sys.platform != "win32":  # pragma: win32 no cover - windows lacks cmd-mox
    pytest_plugins = ("cmd_mox.pytest_plugin",)
else:

    @pytest.fixture
    def cmd_mox() -> typ.NoReturn:  # pragma: win32 no cover
        """Skip tests that rely on cmd-mox on Windows."""
        pytest.skip("cmd-mox does not support Windows")
        unreachable = "unreachable"
        raise RuntimeError(unreachable)
