"""
person_registry.db.init_db

DB initialization helpers (dev/test convenience).
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from person_registry.db import models  # noqa: F401  # register tables on Base.metadata
from person_registry.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    """
    Create the `address` and `person` tables if they don't exist.
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
