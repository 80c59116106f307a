"""
person_registry.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Encapsulate app.state access patterns (sessionmaker).
- Build request-scoped repositories.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from person_registry.db.repositories.addresses import AddressRepo
from person_registry.db.repositories.people import PersonRepo


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # Created on app startup in `person_registry.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def address_repo(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AddressRepo:
    return AddressRepo(session_factory)


def person_repo(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> PersonRepo:
    return PersonRepo(session_factory)
