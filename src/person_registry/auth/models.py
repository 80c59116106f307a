"""
person_registry.auth.models

Auth domain models.

Responsibilities:
- Define the verified claim set (`Claims`) attached to authenticated requests.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


def _as_str_set(value: Any) -> frozenset[str]:
    # OAuth2 servers send scopes either as a JSON list or a space-delimited string.
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset(value.split())
    if isinstance(value, (list, tuple)):
        return frozenset(str(v) for v in value)
    return frozenset()


@dataclass(frozen=True, slots=True)
class Claims:
    """
    Verified claims of an accepted token.
    """

    subject: str
    issuer: str
    audience: tuple[str, ...]
    scopes: frozenset[str]
    authorities: frozenset[str]
    expires_at: datetime
    raw: Mapping[str, Any]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Claims:
        aud = payload.get("aud")
        audience = (aud,) if isinstance(aud, str) else tuple(str(a) for a in aud or ())
        return cls(
            subject=str(payload["sub"]),
            issuer=str(payload["iss"]),
            audience=audience,
            scopes=_as_str_set(payload.get("scope")),
            authorities=_as_str_set(payload.get("authorities")),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
            raw=dict(payload),
        )

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes
