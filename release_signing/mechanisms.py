"""Signing mechanisms, one external tool sequence per platform.

Each mechanism turns a :class:`~release_signing.resolution.ResolvedArtifact`
and a :class:`~release_signing.environment.CredentialContext` into one or more
blocking tool invocations and reports a :class:`SigningOutcome`. Tools are
looked up through an injectable ``commands`` object (plumbum's ``local`` by
default) so tests can substitute doubles.
"""

from __future__ import annotations

import abc
import dataclasses
import json
import logging
import typing as typ

import typer
from plumbum import local
from plumbum.commands import CommandNotFound

from .cmd_utils import formulate_redacted, redact_text, run_cmd
from .errors import ExternalToolFailure, NotarizationRejected

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from .environment import CredentialContext
    from .errors import SigningError
    from .resolution import ResolvedArtifact

__all__ = [
    "ContainerHSMSigner",
    "LocalCodesignSigner",
    "NotarizationSubmitter",
    "SigningMechanism",
    "SigningOutcome",
]

logger = logging.getLogger(__name__)

DEFAULT_SIGNER_IMAGE = "ghcr.io/sslcom/codesigner:latest"
CONTAINER_MOUNT = "/code"
NOTARY_PROFILE = "notarytool-profile"
NOTARY_ACCEPTED = "Accepted"
NOTARY_UNKNOWN = "unknown"


class _Invocation(typ.NamedTuple):
    program: str
    args: tuple[str, ...]


@dataclasses.dataclass(frozen=True, slots=True)
class SigningOutcome:
    """Terminal result of one tool invocation with secrets already masked."""

    mechanism: str
    command: tuple[str, ...]
    returncode: int | None
    stdout: str = ""
    stderr: str = ""
    rejection: NotarizationRejected | None = None

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when the tool exited zero with no rejected verdict."""
        return self.returncode == 0 and self.rejection is None

    def error(self) -> SigningError | None:
        """Return the failure this outcome represents, if any."""
        if self.rejection is not None:
            return self.rejection
        if self.returncode == 0:
            return None
        return ExternalToolFailure(
            self.command, self.returncode, stdout=self.stdout, stderr=self.stderr
        )


class SigningMechanism(abc.ABC):
    """Base class wrapping the external tools used to sign an artefact."""

    name: typ.ClassVar[str]
    required_credentials: typ.ClassVar[tuple[str, ...]] = ()

    def __init__(self, *, commands: typ.Any = None) -> None:  # noqa: ANN401
        self._commands = local if commands is None else commands

    @abc.abstractmethod
    def _invocations(
        self, artifact: ResolvedArtifact, creds: CredentialContext
    ) -> list[_Invocation]:
        """Return every tool invocation, in order, needed to sign ``artifact``."""

    def plan(
        self, artifact: ResolvedArtifact, creds: CredentialContext
    ) -> list[list[str]]:
        """Return the masked command lines :meth:`sign` would run."""
        secrets = creds.secrets()
        return [
            [redact_text(part, secrets) for part in (step.program, *step.args)]
            for step in self._invocations(artifact, creds)
        ]

    def sign(
        self, artifact: ResolvedArtifact, creds: CredentialContext
    ) -> SigningOutcome:
        """Run each invocation once, stopping at the first failure."""
        outcome: SigningOutcome | None = None
        for step in self._invocations(artifact, creds):
            outcome = self._invoke(step, creds)
            if not outcome.succeeded:
                break
        if outcome is None:  # pragma: no cover - every mechanism has a step
            msg = f"{self.name} produced no invocations"
            raise RuntimeError(msg)
        return outcome

    def _invoke(self, step: _Invocation, creds: CredentialContext) -> SigningOutcome:
        """Launch ``step`` and wait for it, mapping launch errors to an outcome."""
        secrets = creds.secrets()
        display = tuple(redact_text(part, secrets) for part in (step.program, *step.args))
        try:
            command = self._commands[step.program][step.args]
            result = run_cmd(command, redact=secrets)
        except (CommandNotFound, OSError) as exc:
            reason = redact_text(str(exc), secrets)
            logger.error("Failed to launch %s: %s", step.program, reason)  # noqa: TRY400
            return SigningOutcome(self.name, display, None, stderr=reason)

        outcome = SigningOutcome(
            self.name,
            tuple(formulate_redacted(command, secrets)),
            result.returncode,
            redact_text(result.stdout, secrets),
            redact_text(result.stderr, secrets),
        )
        _relay(outcome)
        return outcome


def _relay(outcome: SigningOutcome) -> None:
    """Echo captured tool output so it reaches the operator's console."""
    if outcome.stdout:
        typer.echo(outcome.stdout.rstrip("\n"))
    if outcome.stderr:
        typer.echo(outcome.stderr.rstrip("\n"), err=True)


class ContainerHSMSigner(SigningMechanism):
    """Sign a Windows installer with the cloud HSM signer container.

    The installer's directory, not the file, is mounted read-write because
    the signer rewrites the executable in place.
    """

    name = "container-hsm"
    required_credentials = (
        "hsm_username",
        "hsm_password",
        "hsm_credential_id",
        "hsm_totp_secret",
    )

    def __init__(
        self,
        *,
        commands: typ.Any = None,  # noqa: ANN401
        runtime: str = "docker",
        image: str = DEFAULT_SIGNER_IMAGE,
    ) -> None:
        super().__init__(commands=commands)
        self.runtime = runtime
        self.image = image

    def _invocations(
        self, artifact: ResolvedArtifact, creds: CredentialContext
    ) -> list[_Invocation]:
        mount_dir = artifact.path.parent.resolve()
        return [
            _Invocation(
                self.runtime,
                (
                    "run",
                    "--rm",
                    "-v",
                    f"{mount_dir.as_posix()}:{CONTAINER_MOUNT}",
                    self.image,
                    "sign",
                    f"-username={creds['hsm_username']}",
                    f"-password={creds['hsm_password']}",
                    f"-credential_id={creds['hsm_credential_id']}",
                    f"-totp_secret={creds['hsm_totp_secret']}",
                    f"-input_file_path={CONTAINER_MOUNT}/{artifact.path.name}",
                    "-override=true",
                    "-malware_block=false",
                ),
            )
        ]


class LocalCodesignSigner(SigningMechanism):
    """Apply a hardened-runtime Developer ID signature with ``codesign``."""

    name = "codesign"
    required_credentials = ("signing_identity",)

    def __init__(
        self,
        *,
        commands: typ.Any = None,  # noqa: ANN401
        codesign: str = "/usr/bin/codesign",
    ) -> None:
        super().__init__(commands=commands)
        self.codesign = codesign

    def _invocations(
        self, artifact: ResolvedArtifact, creds: CredentialContext
    ) -> list[_Invocation]:
        return [
            _Invocation(
                self.codesign,
                (
                    "--force",
                    "-s",
                    creds["signing_identity"],
                    "--options=runtime",
                    "--deep",
                    str(artifact.path),
                    "-v",
                ),
            )
        ]


class NotarizationSubmitter(SigningMechanism):
    """Submit a signed artefact to Apple's notary service and wait for a verdict.

    Credentials are stored under a keychain profile first; ``notarytool``
    overwrites an existing profile of the same name, so re-running is safe.
    Application bundles are zipped with ``ditto`` for submission and the
    ticket is stapled back onto the bundle once accepted.
    """

    name = "notarization"
    required_credentials = ("apple_id", "apple_team_id", "apple_password")

    def __init__(
        self,
        *,
        commands: typ.Any = None,  # noqa: ANN401
        xcrun: str = "xcrun",
        ditto: str = "ditto",
        profile: str = NOTARY_PROFILE,
    ) -> None:
        super().__init__(commands=commands)
        self.xcrun = xcrun
        self.ditto = ditto
        self.profile = profile

    @staticmethod
    def submission_path(artifact: ResolvedArtifact) -> Path:
        """Return the file submitted to the service for ``artifact``."""
        if artifact.is_bundle_dir:
            return artifact.path.with_suffix(".zip")
        return artifact.path

    def _store_credentials(self, creds: CredentialContext) -> _Invocation:
        return _Invocation(
            self.xcrun,
            (
                "notarytool",
                "store-credentials",
                self.profile,
                "--apple-id",
                creds["apple_id"],
                f"--team-id={creds['apple_team_id']}",
                "--password",
                creds["apple_password"],
            ),
        )

    def _archive(self, artifact: ResolvedArtifact) -> _Invocation:
        return _Invocation(
            self.ditto,
            (
                "-c",
                "-k",
                "--keepParent",
                str(artifact.path),
                str(self.submission_path(artifact)),
            ),
        )

    def _submit(self, artifact: ResolvedArtifact) -> _Invocation:
        return _Invocation(
            self.xcrun,
            (
                "notarytool",
                "submit",
                str(self.submission_path(artifact)),
                "--keychain-profile",
                self.profile,
                "--wait",
                "--output-format",
                "json",
            ),
        )

    def _staple(self, artifact: ResolvedArtifact) -> _Invocation:
        return _Invocation(self.xcrun, ("stapler", "staple", str(artifact.path)))

    def _invocations(
        self, artifact: ResolvedArtifact, creds: CredentialContext
    ) -> list[_Invocation]:
        steps = [self._store_credentials(creds)]
        if artifact.is_bundle_dir:
            steps.append(self._archive(artifact))
        steps.append(self._submit(artifact))
        if artifact.is_bundle_dir:
            steps.append(self._staple(artifact))
        return steps

    def sign(
        self, artifact: ResolvedArtifact, creds: CredentialContext
    ) -> SigningOutcome:
        """Store credentials, submit, check the verdict, then staple bundles.

        The ``ditto`` archive of a bundle is removed once the run ends so it
        never lands among the release artefacts.
        """
        steps = self._invocations(artifact, creds)
        submit = self._submit(artifact)
        outcome: SigningOutcome | None = None
        try:
            for step in steps:
                outcome = self._invoke(step, creds)
                if step == submit:
                    outcome = self._check_verdict(artifact, outcome)
                if not outcome.succeeded:
                    break
        finally:
            if artifact.is_bundle_dir:
                self.submission_path(artifact).unlink(missing_ok=True)
        return typ.cast("SigningOutcome", outcome)

    def _check_verdict(
        self, artifact: ResolvedArtifact, outcome: SigningOutcome
    ) -> SigningOutcome:
        """Attach a rejection to ``outcome`` unless the service accepted it.

        A verdict is read from the output whatever the exit status. A failed
        submission without a parseable verdict stays a tool failure.
        """
        status, submission_id = parse_submission(outcome.stdout)
        if status == NOTARY_ACCEPTED and outcome.returncode == 0:
            logger.info("Notarization accepted (submission %s)", submission_id)
            return outcome
        if outcome.returncode != 0 and status in {NOTARY_ACCEPTED, NOTARY_UNKNOWN}:
            return outcome
        rejection = NotarizationRejected(
            str(self.submission_path(artifact)),
            status,
            submission_id,
            outcome.stdout,
        )
        return dataclasses.replace(outcome, rejection=rejection)


def parse_submission(stdout: str) -> tuple[str, str | None]:
    """Return ``(status, submission id)`` from ``notarytool --output-format json``.

    The final JSON object in the output wins. Output without one yields the
    status ``"unknown"``.
    """
    for candidate in _json_candidates(stdout):
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            status = str(payload.get("status") or NOTARY_UNKNOWN)
            submission_id = payload.get("id")
            return status, str(submission_id) if submission_id else None
    return NOTARY_UNKNOWN, None


def _json_candidates(stdout: str) -> cabc.Iterator[str]:
    text = stdout.strip()
    if text:
        yield text
    for line in reversed(text.splitlines()):
        if line.lstrip().startswith("{"):
            yield line
