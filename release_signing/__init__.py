"""Release artefact signing orchestrator.

This package locates the freshly built installer for a platform, signs it
with that platform's mechanism (cloud HSM container signing for Windows,
``codesign`` plus notarization for macOS) and reports a single terminal
outcome.
"""

from __future__ import annotations

from .environment import CredentialContext
from .errors import (
    ArtifactNotFound,
    ExternalToolFailure,
    MissingCredential,
    NotarizationRejected,
    SigningError,
    UnsupportedPlatform,
)
from .mechanisms import (
    ContainerHSMSigner,
    LocalCodesignSigner,
    NotarizationSubmitter,
    SigningMechanism,
    SigningOutcome,
)
from .pipeline import Orchestrator, RunState, SigningReport
from .platforms import PROFILES, UNSIGNED_PLATFORMS, PlatformProfile, get_profile
from .resolution import ResolvedArtifact, resolve

__all__ = [
    "PROFILES",
    "UNSIGNED_PLATFORMS",
    "ArtifactNotFound",
    "ContainerHSMSigner",
    "CredentialContext",
    "ExternalToolFailure",
    "LocalCodesignSigner",
    "MissingCredential",
    "NotarizationRejected",
    "NotarizationSubmitter",
    "Orchestrator",
    "PlatformProfile",
    "ResolvedArtifact",
    "RunState",
    "SigningError",
    "SigningMechanism",
    "SigningOutcome",
    "SigningReport",
    "UnsupportedPlatform",
    "get_profile",
    "resolve",
]
