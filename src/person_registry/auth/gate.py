"""
person_registry.auth.gate

The authorization gate: a per-request check composed in front of handlers.

Responsibilities:
- Decide whether a path bypasses authentication (static public list).
- Extract the bearer token and hand it to the TokenValidator.
"""

from __future__ import annotations

from collections.abc import Iterable

from person_registry.auth.models import Claims
from person_registry.auth.validator import TokenValidator
from person_registry.errors import MissingToken


def bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise MissingToken("Missing bearer token")
    scheme, _, credentials = authorization.partition(" ")
    credentials = credentials.strip()
    if scheme.lower() != "bearer" or not credentials:
        raise MissingToken("Authorization header is not a bearer token")
    return credentials


class AuthorizationGate:
    def __init__(self, *, validator: TokenValidator, public_paths: Iterable[str]) -> None:
        self._validator = validator
        self._public_paths = frozenset(public_paths)

    def is_public(self, path: str) -> bool:
        return path in self._public_paths

    async def authorize(self, authorization: str | None) -> Claims:
        return await self._validator.validate(bearer_token(authorization))
