"""Signing credentials assembled once from the process environment."""

from __future__ import annotations

import collections.abc as cabc
import os
import types
import typing as typ

from .errors import MissingCredential

__all__ = ["CREDENTIAL_ENV_VARS", "CredentialContext"]


CREDENTIAL_ENV_VARS: typ.Mapping[str, str] = types.MappingProxyType(
    {
        "signing_identity": "APPLE_SIGNING_IDENTITY",
        "apple_id": "APPLE_ID",
        "apple_team_id": "APPLE_TEAM_ID",
        "apple_password": "APPLE_PASSWORD",
        "hsm_username": "ES_USERNAME",
        "hsm_password": "ES_PASSWORD",
        "hsm_credential_id": "ES_CREDENTIAL_ID",
        "hsm_totp_secret": "ES_TOTP_SECRET",
    }
)


class CredentialContext(cabc.Mapping[str, str]):
    """Read-only mapping of logical credential names to secret values.

    Only presence is tracked; values are never validated, logged or shown in
    ``repr``. Build one with :meth:`from_env` at startup and hand the same
    instance to every mechanism.
    """

    __slots__ = ("_values",)

    def __init__(self, values: cabc.Mapping[str, str] | None = None) -> None:
        values = dict(values or {})
        if unknown := sorted(values.keys() - CREDENTIAL_ENV_VARS.keys()):
            msg = f"Unknown credential name(s): {', '.join(unknown)}"
            raise ValueError(msg)
        self._values = types.MappingProxyType(
            {name: value for name, value in values.items() if value}
        )

    @classmethod
    def from_env(
        cls, environ: cabc.Mapping[str, str] | None = None
    ) -> CredentialContext:
        """Collect the enumerated credentials from ``environ`` (``os.environ``)."""
        source = os.environ if environ is None else environ
        return cls(
            {
                name: value
                for name, variable in CREDENTIAL_ENV_VARS.items()
                if (value := source.get(variable))
            }
        )

    def require(self, *names: str) -> None:
        """Raise :class:`MissingCredential` unless every name in ``names`` is set."""
        missing = {
            name: CREDENTIAL_ENV_VARS[name] for name in names if name not in self
        }
        if missing:
            raise MissingCredential(missing)

    def secrets(self) -> tuple[str, ...]:
        """Return the secret values, for masking command echoes and output."""
        return tuple(self._values.values())

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self) -> cabc.Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"CredentialContext(present={sorted(self._values)!r})"
