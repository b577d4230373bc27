import pytest
from fastapi.testclient import TestClient

from app.db.session import get_db
from app.main import app
from app.workers.scheduler import ReviewScheduler


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.scheduler = None


def test_liveness(client):
    resp = client.get("/api/v1/health/live")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_database_health(client):
    resp = client.get("/api/v1/health/db")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_scheduler_disabled(client):
    resp = client.get("/api/v1/health/scheduler")
    assert resp.json() == {"status": "disabled", "running": False}


def test_scheduler_running_and_stopped(client):
    scheduler = ReviewScheduler(lambda: None, interval_seconds=60)
    app.state.scheduler = scheduler
    scheduler.start()
    try:
        assert client.get("/api/v1/health/scheduler").json() == {"status": "ok", "running": True}
    finally:
        scheduler.stop(timeout=5)

    assert client.get("/api/v1/health/scheduler").json() == {"status": "stopped", "running": False}
