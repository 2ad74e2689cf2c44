from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from storefront.api.routes import health
from storefront.main import app


def test_live_endpoint_needs_no_dependencies() -> None:
    client = TestClient(app)
    response = client.get("/live")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_health_reports_database_ok(api_client) -> None:
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "checks": {"database": {"status": "ok"}}}


def test_health_degrades_when_database_is_down(monkeypatch) -> None:
    async def _database_down() -> dict[str, str]:
        return {"status": "failed", "error": "connection refused"}

    monkeypatch.setattr(health, "_check_database", _database_down)

    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"
