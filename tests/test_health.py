import pytest
from sqlalchemy.exc import OperationalError


@pytest.mark.anyio("asyncio")
async def test_healthcheck(client):
    response = await client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] in {"ok", "degraded"}
    assert payload["db_status"] == "ok"
    assert payload["migrations_status"] in {"up_to_date", "out_of_date", "unknown"}
    assert payload["payment_signature_configured"] is True
    assert isinstance(payload["scheduler_config_enabled"], bool)
    assert payload["scheduler_running"] is False
    assert payload["scheduler_lock"]["present"] is False


@pytest.mark.anyio("asyncio")
async def test_health_degrades_on_db_failure(monkeypatch, client, db_session):
    def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("DB down"))

    monkeypatch.setattr(db_session, "execute", broken_execute)

    response = await client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["db_status"] == "error"
    assert payload["migrations_status"] == "unknown"
    assert payload["scheduler_lock"]["status"] == "unknown"


@pytest.mark.anyio("asyncio")
async def test_health_ok_when_migrations_current(monkeypatch, client):
    from crowdfund.routers import health as health_module

    monkeypatch.setattr(health_module, "_migrations_status", lambda db: "up_to_date")

    response = await client.get("/health")
    assert response.json()["status"] == "ok"


@pytest.mark.anyio("asyncio")
async def test_health_reports_running_scheduler(monkeypatch, client):
    from crowdfund.main import app

    class RunningScheduler:
        running = True

    monkeypatch.setattr(app.state, "scheduler", RunningScheduler(), raising=False)

    response = await client.get("/health")
    assert response.json()["scheduler_running"] is True
