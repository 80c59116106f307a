"""
person_registry.auth.deps

FastAPI dependency functions for authorization.

Responsibilities:
- Expose the claims the gate attached to the request.
- Enforce OAuth2 scopes via reusable dependency factories.
"""

from __future__ import annotations

from fastapi import Depends, Request

from person_registry.auth.models import Claims
from person_registry.errors import MissingScope, MissingToken


def get_claims(request: Request) -> Claims:
    claims = getattr(request.state, "claims", None)
    if claims is None:
        # Only reachable if a protected route was added to the public path list.
        raise MissingToken("Request was not authenticated")
    return claims


def require_scope(scope: str):
    def _dep(claims: Claims = Depends(get_claims)) -> Claims:
        if not claims.has_scope(scope):
            raise MissingScope(scope)
        return claims

    return _dep


read_scope = require_scope("read")
write_scope = require_scope("write")


# --- Module Notes -----------------------------------------------------------
# Authentication happens once in `auth.middleware`; these dependencies only
# authorize an already-verified caller.
