from datetime import datetime, timedelta

import httpx
import pytest_asyncio

from storefront.api import deps
from storefront.core.config import get_settings
from storefront.main import app
from storefront.models.base import utcnow
from tests.conftest import FIXED_NOW

AUTH = {"Authorization": "Bearer service-key"}


@pytest_asyncio.fixture
async def api(session_factory, test_settings):
    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[deps.get_db] = override_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


async def test_requires_service_key(api):
    assert (await api.get("/api/webhook-queue")).status_code == 401
    assert (await api.get("/api/webhook-queue", headers={"Authorization": "Bearer anon-key"})).status_code == 401


async def test_enqueue_schedules_first_attempt_a_minute_out(api, load_entry):
    before = utcnow()

    response = await api.post(
        "/api/webhook-queue",
        json={
            "event_type": "payment.captured",
            "payload": {"event": "payment.captured"},
            "last_error": "order row missing",
        },
        headers=AUTH,
    )

    after = utcnow()
    assert response.status_code == 201
    body = response.json()
    assert body["retry_count"] == 0
    assert body["max_retries"] == 5
    assert body["failed_at"] is None
    assert body["last_error"] == "order row missing"
    next_retry_at = datetime.fromisoformat(body["next_retry_at"])
    assert before + timedelta(seconds=60) <= next_retry_at <= after + timedelta(seconds=60)
    assert (await load_entry(body["id"])).payload == {"event": "payment.captured"}


async def test_enqueue_rejects_blank_event_type(api):
    response = await api.post("/api/webhook-queue", json={"event_type": "", "payload": {}}, headers=AUTH)
    assert response.status_code == 422


async def test_list_filters_failed_entries(api, add_entry):
    await add_entry()
    failed = await add_entry(failed_at=FIXED_NOW, retry_count=5, last_error="HTTP 500: nope")

    response = await api.get("/api/webhook-queue", params={"state": "failed"}, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert [item["id"] for item in body] == [failed.id]
    assert body[0]["last_error"] == "HTTP 500: nope"


async def test_get_unknown_entry_is_404(api):
    response = await api.get("/api/webhook-queue/999", headers=AUTH)
    assert response.status_code == 404


async def test_requeue_failed_entry(api, add_entry, load_entry):
    failed = await add_entry(failed_at=FIXED_NOW, retry_count=5)

    response = await api.post(f"/api/webhook-queue/{failed.id}/requeue", headers=AUTH)

    assert response.status_code == 200
    stored = await load_entry(failed.id)
    assert stored.failed_at is None
    assert stored.retry_count == 0
    assert stored.next_retry_at <= utcnow()


async def test_requeue_pending_entry_conflicts(api, add_entry):
    pending = await add_entry()

    response = await api.post(f"/api/webhook-queue/{pending.id}/requeue", headers=AUTH)

    assert response.status_code == 409
