"""Per-run identifiers tying log lines and step outputs to one signing run."""

from __future__ import annotations

import uuid_utils


def new_run_id() -> str:
    """Return a time-ordered UUIDv7 hex string for a signing run."""
    return uuid_utils.uuid7().hex
