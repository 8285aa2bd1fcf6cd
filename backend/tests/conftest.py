"""
Shared fixtures for the webhook queue test-suite.

- a throwaway SQLite queue store per test
- a recording HTTP transport standing in for the webhook handlers
- a fixed clock so backoff arithmetic can be asserted exactly
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from storefront.core.config import Settings
from storefront.models.webhook_queue import WebhookQueueEntry
from storefront.services.queue_processor import WebhookQueueProcessor

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0)
BASE_URL = "https://shop.example.com/"


class DispatchRecorder:
    """Mock transport that records every redelivery and answers via ``handler``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(200, json={"received": True})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def respond_with(self, status_code: int, text: str = "") -> None:
        self.handler = lambda request: httpx.Response(status_code, text=text)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        supabase_url=BASE_URL,
        supabase_service_role_key="service-key",
        supabase_anon_key="anon-key",
        process_webhook_queue_secret="queue-secret",
        webhook_queue_pass_lock_enabled=False,
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def dispatch() -> DispatchRecorder:
    return DispatchRecorder()


@pytest_asyncio.fixture
async def http_client(dispatch):
    async with dispatch.client() as client:
        yield client


@pytest.fixture
def add_entry(session_factory):
    """Persist a queue row; defaults describe a pending entry that is due now."""

    async def _add(**overrides: Any) -> WebhookQueueEntry:
        values: Dict[str, Any] = {
            "event_type": "payment.captured",
            "payload": {"event": "payment.captured", "payload": {"payment": {"entity": {"id": "pay_123"}}}},
            "retry_count": 0,
            "max_retries": 5,
            "next_retry_at": FIXED_NOW - timedelta(minutes=1),
        }
        values.update(overrides)
        async with session_factory() as session:
            entry = WebhookQueueEntry(**values)
            session.add(entry)
            await session.commit()
            await session.refresh(entry)
            return entry

    return _add


@pytest.fixture
def load_entry(session_factory):
    async def _load(entry_id: int) -> WebhookQueueEntry | None:
        async with session_factory() as session:
            return await session.get(WebhookQueueEntry, entry_id)

    return _load


@pytest.fixture
def processor(session, http_client, test_settings) -> WebhookQueueProcessor:
    return WebhookQueueProcessor.from_settings(
        session,
        test_settings,
        http_client=http_client,
        clock=lambda: FIXED_NOW,
    )
