"""Static per-platform bundle metadata and host platform detection.

Profiles describe where the Tauri bundler leaves each platform's installer
beneath the cargo target directory::

    <build_root>/<target_triple>/release/bundle/<bundle_kind>/<binary_glob>

Platforms listed in :data:`UNSIGNED_PLATFORMS` ship unsigned bundles on
purpose; any other platform without a profile is a configuration gap.
"""

from __future__ import annotations

import dataclasses
import sys
import types
import typing as typ
from pathlib import Path

from .errors import UnsupportedPlatform

__all__ = [
    "PROFILES",
    "UNSIGNED_PLATFORMS",
    "PlatformProfile",
    "get_profile",
    "host_platform",
]


@dataclasses.dataclass(frozen=True, slots=True)
class PlatformProfile:
    """Describe the release bundle produced for one platform."""

    platform_id: str
    binary_glob: str
    bundle_kind: str
    target_triple: str

    def bundle_dir(self, build_root: Path) -> Path:
        """Return the directory the bundler writes ``bundle_kind`` into."""
        return build_root / self.target_triple / "release" / "bundle" / self.bundle_kind

    def search_pattern(self, build_root: Path) -> Path:
        """Return the full glob searched for this profile's artefact."""
        return self.bundle_dir(build_root) / self.binary_glob


PROFILES: typ.Mapping[str, PlatformProfile] = types.MappingProxyType(
    {
        "win32": PlatformProfile(
            platform_id="win32",
            binary_glob="overlayed_*.exe",
            bundle_kind="nsis",
            target_triple="x86_64-pc-windows-msvc",
        ),
        "darwin": PlatformProfile(
            platform_id="darwin",
            binary_glob="overlayed.app",
            bundle_kind="macos",
            target_triple="aarch64-apple-darwin",
        ),
    }
)

UNSIGNED_PLATFORMS: frozenset[str] = frozenset({"linux"})


def host_platform() -> str:
    """Return the platform id of the running interpreter."""
    # sys.platform is "linux" on modern interpreters but older ones used "linux2".
    return "linux" if sys.platform.startswith("linux") else sys.platform


def get_profile(platform_id: str) -> PlatformProfile:
    """Return the profile for ``platform_id`` or raise :class:`UnsupportedPlatform`."""
    try:
        return PROFILES[platform_id]
    except KeyError as exc:
        raise UnsupportedPlatform(
            platform_id, [*PROFILES, *UNSIGNED_PLATFORMS]
        ) from exc
