r"""Locate the built release bundle for a platform profile.

The search is a single glob beneath the bundler's output directory::

    <build_root>/<target_triple>/release/bundle/<bundle_kind>/<binary_glob>

Key behaviours:
- Matches may be files (``.exe`` installers) or directories (``.app``
  bundles).
- A missing bundle directory behaves exactly like an empty one.
- When several candidates match, the lexicographically first POSIX path
  wins, so repeated runs against the same tree pick the same artefact.

Example usage::

    from pathlib import Path
    from release_signing.platforms import get_profile
    from release_signing.resolution import resolve

    artifact = resolve(get_profile("win32"), Path("apps/desktop/src-tauri/target"))
    print(artifact.path)
"""

from __future__ import annotations

import dataclasses
import logging
import typing as typ
from pathlib import Path

from .errors import ArtifactNotFound

if typ.TYPE_CHECKING:
    from .platforms import PlatformProfile

__all__ = ["ResolvedArtifact", "resolve"]

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class ResolvedArtifact:
    """Artefact chosen for signing along with how it was found."""

    path: Path
    profile: PlatformProfile
    pattern: str = ""
    matches: tuple[Path, ...] = ()

    @property
    def is_bundle_dir(self) -> bool:
        """Return ``True`` when the artefact is a directory bundle (``.app``)."""
        return self.path.is_dir()


def _sorted_matches(search_dir: Path, glob: str) -> list[Path]:
    """Return existing matches of ``glob`` in ``search_dir`` sorted by path."""
    if not search_dir.is_dir():
        return []
    return sorted(
        (path for path in search_dir.glob(glob) if path.exists()),
        key=lambda path: path.as_posix(),
    )


def resolve(profile: PlatformProfile, build_root: Path) -> ResolvedArtifact:
    """Return the artefact for ``profile`` beneath ``build_root``.

    Parameters
    ----------
    profile
        Platform profile describing the bundle location and file pattern.
    build_root
        Cargo target directory containing one subtree per target triple.

    Returns
    -------
    ResolvedArtifact
        The first sorted match together with every candidate considered.

    Raises
    ------
    ArtifactNotFound
        Raised when nothing matches, naming the attempted glob path.
    """
    search_dir = profile.bundle_dir(Path(build_root))
    pattern = profile.search_pattern(Path(build_root)).as_posix()
    matches = _sorted_matches(search_dir, profile.binary_glob)
    if not matches:
        raise ArtifactNotFound(pattern)

    chosen = matches[0]
    if len(matches) > 1:
        logger.warning(
            "Multiple artefacts match %s; using %s and ignoring: %s",
            pattern,
            chosen.name,
            ", ".join(path.name for path in matches[1:]),
        )
    logger.info("Resolved %s artefact: %s", profile.platform_id, chosen)
    return ResolvedArtifact(
        path=chosen, profile=profile, pattern=pattern, matches=tuple(matches)
    )
