"""
person_registry.errors

Error taxonomy shared by the auth gate and the persistence layer.

Responsibilities:
- Give every failure a distinct type so callers can log precisely.
- Carry the HTTP status each family maps to; the app factory installs one
  handler per family.
"""

from __future__ import annotations


class RegistryError(Exception):
    status_code: int = 500
    code: str = "internal_error"


# --- Authentication (401) ---------------------------------------------------


class AuthenticationError(RegistryError):
    status_code = 401
    code = "unauthenticated"


class MissingToken(AuthenticationError):
    code = "missing_token"


class MalformedToken(AuthenticationError):
    code = "malformed_token"


class UnsupportedAlgorithm(AuthenticationError):
    code = "unsupported_algorithm"


class InvalidSignature(AuthenticationError):
    code = "invalid_signature"


class TokenExpired(AuthenticationError):
    code = "token_expired"


class TokenNotYetValid(AuthenticationError):
    code = "token_not_yet_valid"


class IssuerMismatch(AuthenticationError):
    code = "issuer_mismatch"


class AudienceMismatch(AuthenticationError):
    code = "audience_mismatch"


class UnknownKey(AuthenticationError):
    code = "unknown_key"


# --- Authorization (403) ----------------------------------------------------


class ForbiddenError(RegistryError):
    status_code = 403
    code = "forbidden"


class MissingScope(ForbiddenError):
    code = "missing_scope"

    def __init__(self, scope: str) -> None:
        super().__init__(f"Client requires the scope: {scope}")
        self.scope = scope


# --- Domain -----------------------------------------------------------------


class ValidationError(RegistryError):
    status_code = 400
    code = "invalid_request"


class InvalidReference(ValidationError):
    code = "invalid_reference"


class NotFoundError(RegistryError):
    status_code = 404
    code = "not_found"


class ConflictError(RegistryError):
    status_code = 409
    code = "conflict"


class AddressInUse(ConflictError):
    code = "address_in_use"


class IdentifierCollision(ConflictError):
    code = "identifier_collision"


# --- Internal (500) ---------------------------------------------------------


class InternalError(RegistryError):
    status_code = 500
    code = "internal_error"


class KeyDiscoveryError(InternalError):
    code = "key_discovery_unavailable"


# --- Module Notes -----------------------------------------------------------
# ValidationError shares its name with pydantic's; modules using both import it
# qualified (`from person_registry import errors`).
