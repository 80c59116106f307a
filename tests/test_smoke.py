"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts and the DB readiness probe works in test mode.
- Ensure probes stay reachable without a token.
"""

from __future__ import annotations

import pytest


@pytest.mark.asyncio
async def test_health_endpoints(client) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json()["status"] == "ready"
    assert r.json()["signing_keys"] == 1


@pytest.mark.asyncio
async def test_request_id_is_propagated(client) -> None:
    r = await client.get("/healthz", headers={"x-request-id": "req-123"})

    assert r.headers["x-request-id"] == "req-123"


@pytest.mark.asyncio
async def test_request_id_is_generated_when_absent(client) -> None:
    r = await client.get("/healthz")

    assert r.headers["x-request-id"]
