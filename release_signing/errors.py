"""Error types shared across the release signing package."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = [
    "ArtifactNotFound",
    "ExternalToolFailure",
    "MissingCredential",
    "NotarizationRejected",
    "SigningError",
    "UnsupportedPlatform",
]


class SigningError(RuntimeError):
    """Raised when the signing run cannot continue."""


class ArtifactNotFound(SigningError):
    """Raised when the build output holds no artefact matching the profile."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        super().__init__(
            f"No artefact found matching {pattern}. "
            "Has the release bundle been built for this target?"
        )


class MissingCredential(SigningError):
    """Raised when a secret needed by the selected mechanism is absent."""

    def __init__(self, missing: cabc.Mapping[str, str]) -> None:
        self.missing = dict(missing)
        described = ", ".join(
            f"{name} (${variable})" for name, variable in sorted(self.missing.items())
        )
        super().__init__(f"Missing signing credential(s): {described}")


class UnsupportedPlatform(SigningError):
    """Raised for a platform with neither a profile nor a no-signing entry."""

    def __init__(self, platform_id: str, known: cabc.Iterable[str]) -> None:
        self.platform_id = platform_id
        super().__init__(
            f"Unsupported platform {platform_id!r}; "
            f"known platforms: {', '.join(sorted(known))}"
        )


class ExternalToolFailure(SigningError):
    """Raised when a signing tool fails to launch or exits non-zero."""

    def __init__(
        self,
        command: cabc.Sequence[str],
        returncode: int | None,
        *,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        status = (
            "failed to launch"
            if returncode is None
            else f"exited with status {returncode}"
        )
        lines = [f"Command {' '.join(self.command)!r} {status}"]
        if stdout.strip():
            lines.append(f"stdout:\n{stdout.rstrip()}")
        if stderr.strip():
            lines.append(f"stderr:\n{stderr.rstrip()}")
        super().__init__("\n".join(lines))


class NotarizationRejected(SigningError):
    """Raised when the notarization service returns a non-accepted verdict."""

    def __init__(
        self, path: str, status: str, submission_id: str | None, output: str = ""
    ) -> None:
        self.path = path
        self.status = status
        self.submission_id = submission_id
        message = f"Notarization of {path} finished with status {status!r}"
        if submission_id:
            message += (
                f" (submission {submission_id}; inspect it with "
                f"'xcrun notarytool log {submission_id}')"
            )
        if output.strip():
            message += f"\n{output.rstrip()}"
        super().__init__(message)
