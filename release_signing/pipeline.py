"""Signing orchestrator: choose the mechanisms, find the artefact, sign once.

The run moves through ``IDLE -> ARTIFACT_RESOLVED -> SIGNED | FAILED``.
Platforms on the no-signing allow-list end in ``SKIPPED`` before any
filesystem or process access. Nothing is retried: every tool runs at most
once per run because the HSM and notary services bill and rate-limit per
request.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import types
import typing as typ
from pathlib import Path

from .errors import SigningError, UnsupportedPlatform
from .mechanisms import (
    ContainerHSMSigner,
    LocalCodesignSigner,
    NotarizationSubmitter,
    SigningMechanism,
    SigningOutcome,
)
from .platforms import UNSIGNED_PLATFORMS, get_profile, host_platform
from .resolution import ResolvedArtifact, resolve

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .environment import CredentialContext

__all__ = [
    "SIGNING_PLANS",
    "Orchestrator",
    "RunState",
    "SigningReport",
]

logger = logging.getLogger(__name__)


class RunState(enum.StrEnum):
    """Lifecycle states of a signing run."""

    IDLE = "idle"
    ARTIFACT_RESOLVED = "artifact_resolved"
    SIGNED = "signed"
    FAILED = "failed"
    SKIPPED = "skipped"


SIGNING_PLANS: typ.Mapping[str, tuple[type[SigningMechanism], ...]] = (
    types.MappingProxyType(
        {
            "win32": (ContainerHSMSigner,),
            "darwin": (LocalCodesignSigner, NotarizationSubmitter),
        }
    )
)


@dataclasses.dataclass(slots=True)
class SigningReport:
    """Outcome of :meth:`Orchestrator.run`."""

    platform_id: str
    state: RunState = RunState.IDLE
    artifact: ResolvedArtifact | None = None
    outcomes: list[SigningOutcome] = dataclasses.field(default_factory=list)
    planned: list[list[str]] = dataclasses.field(default_factory=list)
    error: SigningError | None = None

    @property
    def exit_code(self) -> int:
        """Return the process exit status for this report."""
        return 1 if self.state is RunState.FAILED else 0


class Orchestrator:
    """Drive one signing run for a single platform.

    Parameters
    ----------
    creds
        Credentials loaded once at startup and shared with every mechanism.
    build_root
        Cargo target directory holding one subtree per target triple.
    platform_id
        Platform whose artefact is signed; defaults to the host platform.
    mechanisms
        Mechanism instances to use instead of the :data:`SIGNING_PLANS`
        entry for ``platform_id``.
    dry_run
        Resolve the artefact and report the masked commands without running
        any of them.
    """

    def __init__(
        self,
        creds: CredentialContext,
        build_root: Path,
        *,
        platform_id: str | None = None,
        mechanisms: cabc.Sequence[SigningMechanism] | None = None,
        dry_run: bool = False,
    ) -> None:
        self._creds = creds
        self.build_root = Path(build_root)
        self.platform_id = platform_id or host_platform()
        self._mechanisms = None if mechanisms is None else tuple(mechanisms)
        self.dry_run = dry_run

    def select_mechanisms(self) -> tuple[SigningMechanism, ...]:
        """Return the mechanisms, in order, for :attr:`platform_id`."""
        if self._mechanisms is not None:
            return self._mechanisms
        try:
            plan = SIGNING_PLANS[self.platform_id]
        except KeyError as exc:
            raise UnsupportedPlatform(self.platform_id, SIGNING_PLANS) from exc
        return tuple(factory() for factory in plan)

    def run(self) -> SigningReport:
        """Execute the run and return its terminal report.

        Signing errors are recorded on the report rather than raised.
        """
        report = SigningReport(platform_id=self.platform_id)
        if self.platform_id in UNSIGNED_PLATFORMS:
            logger.info(
                "Platform %s ships unsigned bundles; nothing to sign.",
                self.platform_id,
            )
            report.state = RunState.SKIPPED
            return report

        try:
            self._sign(report)
        except SigningError as exc:
            report.state = RunState.FAILED
            report.error = exc
        return report

    def _sign(self, report: SigningReport) -> None:
        profile = get_profile(self.platform_id)
        mechanisms = self.select_mechanisms()
        for mechanism in mechanisms:
            self._creds.require(*mechanism.required_credentials)

        artifact = resolve(profile, self.build_root)
        report.artifact = artifact
        report.state = RunState.ARTIFACT_RESOLVED

        if self.dry_run:
            for mechanism in mechanisms:
                report.planned.extend(mechanism.plan(artifact, self._creds))
            logger.info("Dry run: %d command(s) not executed.", len(report.planned))
            return

        for mechanism in mechanisms:
            logger.info("Signing %s with %s", artifact.path, mechanism.name)
            outcome = mechanism.sign(artifact, self._creds)
            report.outcomes.append(outcome)
            if (error := outcome.error()) is not None:
                raise error

        report.state = RunState.SIGNED
        logger.info("Signing completed for %s", artifact.path)
