"""
person_registry.api.app

FastAPI app factory for the Person Registry service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Compose the authorization gate (KeyStore -> TokenValidator -> gate) in
  front of every route.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Map the error taxonomy onto HTTP responses.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from person_registry.api.routers.addresses import router as addresses_router
from person_registry.api.routers.health import router as health_router
from person_registry.api.routers.people import router as people_router
from person_registry.auth.gate import AuthorizationGate
from person_registry.auth.keystore import JwksClient, KeyStore
from person_registry.auth.middleware import AuthorizationGateMiddleware
from person_registry.auth.validator import TokenValidator
from person_registry.db.init_db import init_db
from person_registry.db.session import create_engine, create_sessionmaker
from person_registry.errors import KeyDiscoveryError, RegistryError
from person_registry.observability.logging import configure_logging, get_logger
from person_registry.observability.middleware import RequestContextMiddleware
from person_registry.settings import Settings

log = get_logger(__name__)


def build_key_store(settings: Settings) -> KeyStore:
    return KeyStore(
        JwksClient(
            url=settings.auth_jwks_url,
            timeout_seconds=settings.jwks_fetch_timeout_seconds,
        ),
        ttl_seconds=settings.jwks_cache_ttl_seconds,
        refresh_cooldown_seconds=settings.jwks_refresh_cooldown_seconds,
    )


async def _registry_error(_: Request, exc: RegistryError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request_failed", reason=exc.code, detail=str(exc))
        return JSONResponse({"message": "Something went wrong"}, status_code=exc.status_code)
    return JSONResponse({"message": str(exc)}, status_code=exc.status_code)


async def _request_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        {"message": "Invalid request", "errors": jsonable_errors(exc)},
        status_code=HTTP_400_BAD_REQUEST,
    )


async def _storage_error(_: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error("storage_failure", error=str(exc), exc_info=exc)
    return JSONResponse(
        {"message": "Something went wrong"}, status_code=HTTP_500_INTERNAL_SERVER_ERROR
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    return [
        {"loc": [str(p) for p in err.get("loc", ())], "msg": str(err.get("msg", ""))}
        for err in exc.errors()
    ]


def create_app(*, settings: Settings, key_store: KeyStore | None = None) -> FastAPI:
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, json=settings.log_json
    )

    keys = key_store or build_key_store(settings)
    gate = AuthorizationGate(
        validator=TokenValidator(
            key_store=keys,
            issuer=settings.auth_issuer,
            audience=settings.auth_audience,
            leeway_seconds=settings.token_leeway_seconds,
        ),
        public_paths=settings.public_paths,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Prod schemas are managed outside the service.
            await init_db(engine)
        try:
            await keys.refresh()
        except KeyDiscoveryError as e:
            # Not fatal: the first protected request retries discovery.
            log.warning("jwks_warmup_failed", error=str(e))
        try:
            yield
        finally:
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Person Registry",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.key_store = keys

    # Last added runs first: request context wraps the gate.
    app.add_middleware(AuthorizationGateMiddleware, gate=gate)
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(RegistryError, _registry_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(SQLAlchemyError, _storage_error)

    app.include_router(health_router, tags=["health"])
    app.include_router(addresses_router)
    app.include_router(people_router)

    return app


# --- Module Notes -----------------------------------------------------------
# Tests pass `key_store=KeyStore.from_jwks(...)` to run the full gate without an
# authorization server.
