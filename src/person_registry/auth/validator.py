"""
person_registry.auth.validator

Token validation against the external authorization server.

Responsibilities:
- Reject unsupported algorithms before any key lookup.
- Verify the signature with the key the KeyStore resolves for the token's kid.
- Enforce registered claims (exp/nbf/iss/aud) and return typed `Claims`.
"""

from __future__ import annotations

from typing import Any

import jwt
from jwt.exceptions import (
    ExpiredSignatureError,
    ImmatureSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    MissingRequiredClaimError,
)

from person_registry.auth.keystore import SUPPORTED_ALGORITHMS, KeyStore
from person_registry.auth.models import Claims
from person_registry.errors import (
    AudienceMismatch,
    InvalidSignature,
    IssuerMismatch,
    MalformedToken,
    TokenExpired,
    TokenNotYetValid,
    UnsupportedAlgorithm,
)

_REQUIRED_CLAIMS = ["exp", "iss", "aud", "sub"]


class TokenValidator:
    def __init__(
        self,
        *,
        key_store: KeyStore,
        issuer: str,
        audience: str,
        leeway_seconds: int = 0,
    ) -> None:
        self._keys = key_store
        self._issuer = issuer
        self._audience = audience
        self._leeway = leeway_seconds

    async def validate(self, token: str) -> Claims:
        try:
            header: dict[str, Any] = jwt.get_unverified_header(token)
        except InvalidTokenError as e:
            # Undecodable segments, or header fields PyJWT rejects (non-string kid).
            raise MalformedToken(f"Undecodable token: {e}") from e

        # Algorithm confusion: decide on alg before touching any key material.
        alg = header.get("alg")
        if not isinstance(alg, str) or alg not in SUPPORTED_ALGORITHMS:
            raise UnsupportedAlgorithm(f"Algorithm not accepted: {alg!r}")

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise MalformedToken("Token header has no key id")

        key = await self._keys.get(kid)
        if key.algorithm != alg:
            raise UnsupportedAlgorithm(
                f"Key {kid} is advertised for {key.algorithm}, token claims {alg}"
            )

        try:
            payload = jwt.decode(
                token,
                key.key,
                algorithms=[key.algorithm],
                issuer=self._issuer,
                audience=self._audience,
                leeway=self._leeway,
                options={"require": _REQUIRED_CLAIMS},
            )
        except ExpiredSignatureError as e:
            raise TokenExpired(str(e)) from e
        except ImmatureSignatureError as e:
            raise TokenNotYetValid(str(e)) from e
        except InvalidIssuerError as e:
            raise IssuerMismatch(str(e)) from e
        except InvalidAudienceError as e:
            raise AudienceMismatch(str(e)) from e
        except InvalidSignatureError as e:
            raise InvalidSignature(str(e)) from e
        except MissingRequiredClaimError as e:
            if e.claim == "iss":
                raise IssuerMismatch(str(e)) from e
            if e.claim == "aud":
                raise AudienceMismatch(str(e)) from e
            raise MalformedToken(str(e)) from e
        except InvalidTokenError as e:
            raise MalformedToken(str(e)) from e

        return Claims.from_payload(payload)


# --- Module Notes -----------------------------------------------------------
# Every failure is a distinct AuthenticationError subtype for logging; the gate
# collapses them into one uniform 401.
