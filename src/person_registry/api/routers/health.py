"""
person_registry.api.routers.health

Liveness and readiness probes (public: listed in `Settings.public_paths`).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from person_registry.api.deps import db_session

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    request: Request, session: AsyncSession = Depends(db_session)
) -> dict[str, Any]:
    # Storage must answer; an empty key set is reported, not fatal.
    await session.execute(text("SELECT 1"))
    key_ids = request.app.state.key_store.key_ids
    return {"status": "ready", "signing_keys": len(key_ids)}
