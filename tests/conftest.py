"""
tests.conftest

Shared fixtures: signing keys, token minting, a SQLite-backed session factory
and an HTTP client bound to the real app.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import jwt
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from person_registry.api.app import create_app
from person_registry.auth.keystore import KeyStore
from person_registry.db.init_db import init_db
from person_registry.db.session import create_engine, create_sessionmaker
from person_registry.settings import Settings

from tests.helpers import AUDIENCE, ISSUER, KID, public_jwk


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks(private_key: rsa.RSAPrivateKey) -> dict[str, Any]:
    return {"keys": [public_jwk(private_key, KID)]}


@pytest.fixture
def claims_payload() -> Callable[..., dict[str, Any]]:
    def _payload(**overrides: Any) -> dict[str, Any]:
        now = int(time.time())
        payload: dict[str, Any] = {
            "iss": ISSUER,
            "aud": AUDIENCE,
            "sub": "test-client",
            "scope": ["read", "write"],
            "authorities": ["ROLE_SYSTEM"],
            "iat": now,
            "exp": now + 3600,
        }
        payload.update(overrides)
        return {k: v for k, v in payload.items() if v is not None}

    return _payload


@pytest.fixture
def mint_token(
    private_key: rsa.RSAPrivateKey, claims_payload: Callable[..., dict[str, Any]]
) -> Callable[..., str]:
    def _mint(
        *,
        key: rsa.RSAPrivateKey | None = None,
        kid: str | None = KID,
        algorithm: str = "RS256",
        **claims: Any,
    ) -> str:
        headers = {"kid": kid} if kid is not None else {}
        return jwt.encode(
            claims_payload(**claims),
            key or private_key,
            algorithm=algorithm,
            headers=headers,
        )

    return _mint


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}",
        auth_issuer=ISSUER,
        auth_audience=AUDIENCE,
    )


@pytest_asyncio.fixture
async def sessionmaker(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


@pytest.fixture
def app(settings: Settings, jwks: dict[str, Any]) -> FastAPI:
    return create_app(settings=settings, key_store=KeyStore.from_jwks(jwks))


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    # httpx's ASGITransport does not run lifespan; enter it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            yield http


@pytest.fixture
def auth_headers(mint_token: Callable[..., str]) -> Callable[..., dict[str, str]]:
    def _headers(**claims: Any) -> dict[str, str]:
        return {"Authorization": f"Bearer {mint_token(**claims)}"}

    return _headers
