from fastapi.testclient import TestClient

from petal_economy.api.routes import health as health_routes
from petal_economy.main import app


async def _ok_check() -> dict[str, str]:
    return {"status": "ok"}


async def _failed_check() -> dict[str, str]:
    return {"status": "failed", "error": "database_unavailable"}


def test_live_ok() -> None:
    client = TestClient(app)
    response = client.get("/live")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_health_ok(monkeypatch) -> None:
    monkeypatch.setattr(health_routes, "_check_database", _ok_check)

    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "checks": {"database": {"status": "ok"}}}


def test_health_returns_503_when_database_failed(monkeypatch) -> None:
    monkeypatch.setattr(health_routes, "_check_database", _failed_check)

    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 503
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["checks"]["database"] == {"status": "failed", "error": "database_unavailable"}
