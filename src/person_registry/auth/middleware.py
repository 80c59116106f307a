"""
person_registry.auth.middleware

Starlette middleware wrapping the AuthorizationGate around every route.

Responsibilities:
- Short-circuit rejected requests before routing, so no handler (and no
  repository operation) runs for them.
- Attach verified claims to `request.state.claims` and the log context.
"""

from __future__ import annotations

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_500_INTERNAL_SERVER_ERROR
from starlette.types import ASGIApp

from person_registry.auth.gate import AuthorizationGate
from person_registry.errors import AuthenticationError, InternalError
from person_registry.observability.logging import get_logger

log = get_logger(__name__)


class AuthorizationGateMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, *, gate: AuthorizationGate) -> None:
        super().__init__(app)
        self._gate = gate

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self._gate.is_public(request.url.path):
            return await call_next(request)

        try:
            claims = await self._gate.authorize(request.headers.get("authorization"))
        except AuthenticationError as e:
            # Uniform rejection; the reason stays in server logs.
            log.warning("request_rejected", reason=e.code, detail=str(e))
            return JSONResponse(
                {"message": "Invalid or missing token"},
                status_code=HTTP_401_UNAUTHORIZED,
                headers={"WWW-Authenticate": "Bearer"},
            )
        except InternalError as e:
            log.error("token_verification_unavailable", reason=e.code, detail=str(e))
            return JSONResponse(
                {"message": "Unable to verify token"},
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            )

        request.state.claims = claims
        structlog.contextvars.bind_contextvars(subject=claims.subject)
        return await call_next(request)
