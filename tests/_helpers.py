"""Command doubles and canned secrets shared by the signing tests."""

from __future__ import annotations

import sys
import typing as typ

import pytest

if typ.TYPE_CHECKING:  # pragma: no cover - imported for annotations only
    import collections.abc as cabc
    from pathlib import Path

CMD_MOX_UNSUPPORTED = pytest.mark.skipif(
    sys.platform == "win32", reason="cmd-mox does not support Windows"
)

HSM_SECRETS = {
    "hsm_username": "release-bot",
    "hsm_password": "s3cr3t-pass",
    "hsm_credential_id": "cred-0042",
    "hsm_totp_secret": "TOTPSEEDVALUE",
}

APPLE_SECRETS = {
    "signing_identity": "Developer ID Application: Example (TEAM123)",
    "apple_id": "release@example.com",
    "apple_team_id": "TEAM123",
    "apple_password": "app-specific-pw",
}

Response = tuple[int, str, str]


class CmdMoxEnvironment(typ.Protocol):
    """Subset of :class:`cmd_mox.EnvironmentManager` used in tests."""

    shim_dir: Path | None
    socket_path: Path | None


class CmdMox(typ.Protocol):
    """Typed façade for the cmd-mox pytest fixture used in tests."""

    environment: CmdMoxEnvironment

    def stub(self, command: str) -> typ.Any:  # noqa: ANN401
        """Register a stubbed command double."""
        ...

    def replay(self) -> None:
        """Activate the recorded doubles."""
        ...

    def verify(self) -> None:
        """Assert that recorded expectations were satisfied."""
        ...


class FakeTool:
    """Plumbum-style command double recording every bound invocation.

    ``handler`` receives the bound argv and returns ``(returncode, stdout,
    stderr)``; without one the fixed ``returncode``/``stdout``/``stderr`` are
    used. ``error`` is raised from ``run`` to simulate a launch failure.
    """

    def __init__(
        self,
        name: str,
        *,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        handler: cabc.Callable[[list[str]], Response] | None = None,
        error: BaseException | None = None,
    ) -> None:
        self.name = name
        self.response: Response = (returncode, stdout, stderr)
        self.handler = handler
        self.error = error
        self.calls: list[list[str]] = []

    def __getitem__(self, args: object) -> FakeBoundCommand:
        argv = list(args) if isinstance(args, tuple) else [args]
        return FakeBoundCommand(self, [str(arg) for arg in argv])


class FakeBoundCommand:
    """A :class:`FakeTool` bound to concrete arguments."""

    def __init__(self, tool: FakeTool, args: list[str]) -> None:
        self.tool = tool
        self.args = args

    def formulate(self) -> list[str]:
        return [self.tool.name, *self.args]

    def run(self, **_kwargs: object) -> Response:
        self.tool.calls.append(self.args)
        if self.tool.error is not None:
            raise self.tool.error
        if self.tool.handler is not None:
            return self.tool.handler(self.args)
        return self.tool.response


def notary_json(status: str, submission_id: str = "4f1c-sub") -> str:
    """Return ``notarytool submit --output-format json`` style output."""
    return (
        f'{{"id": "{submission_id}", "status": "{status}", '
        '"message": "Processing complete"}\n'
    )
