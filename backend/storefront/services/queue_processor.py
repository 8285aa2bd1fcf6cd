from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict

import httpx
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import DEFAULT_MAX_RETRIES, Settings
from storefront.models.base import utcnow
from storefront.models.enums import DispatchOutcome
from storefront.repositories.webhook_queue_repository import WebhookQueueRepository
from storefront.services.retry import (
    calculate_next_retry,
    format_exception,
    format_http_error,
    is_exhausted,
)
from storefront.services.routing import resolve_webhook_url

INTERNAL_RETRY_HEADER = "X-Internal-Queue-Retry"


class QueueConfigurationError(RuntimeError):
    """Raised when the processor cannot be built from the environment."""


@dataclass(frozen=True)
class QueuedDelivery:
    """Snapshot of a due row taken at selection time."""

    id: int
    event_type: str
    payload: Dict[str, Any]
    retry_count: int
    max_retries: int


@dataclass
class ProcessResult:
    processed: int = 0
    total: int = 0
    skipped: int = 0



class WebhookQueueProcessor:
    """Drains due webhook queue rows by re-posting them to their handlers.

    A pass is sequential. Each row is claimed, dispatched and settled on its
    own commit, so a failure on one row never touches the rest of the batch.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        base_url: str,
        auth_key: str,
        queue_secret: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
        claim_ttl: int = 300,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.repo = WebhookQueueRepository(session)
        self.base_url = base_url
        self.auth_key = auth_key
        self.queue_secret = queue_secret
        self.http_client = http_client
        self.timeout = timeout
        self.claim_ttl = claim_ttl
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        session: AsyncSession,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> "WebhookQueueProcessor":
        if not settings.supabase_url or not settings.supabase_service_role_key:
            logger.error("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
            raise QueueConfigurationError("Configuration error")
        return cls(
            session,
            base_url=settings.supabase_url,
            auth_key=settings.get_dispatch_key(),
            queue_secret=settings.process_webhook_queue_secret,
            http_client=http_client,
            timeout=settings.webhook_dispatch_timeout,
            claim_ttl=settings.webhook_queue_claim_ttl,
            clock=clock,
        )

    def build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.auth_key}",
        }
        # Handlers skip gateway signature verification when this matches their secret.
        if self.queue_secret:
            headers[INTERNAL_RETRY_HEADER] = self.queue_secret
        return headers

    async def select_due(self, now: datetime) -> list[QueuedDelivery]:
        rows = await self.repo.list_due(now)
        deliveries = [
            QueuedDelivery(
                id=row.id,
                event_type=row.event_type,
                payload=row.payload,
                retry_count=row.retry_count or 0,
                max_retries=row.max_retries if row.max_retries is not None else DEFAULT_MAX_RETRIES,
            )
            for row in rows
        ]
        return [item for item in deliveries if not is_exhausted(item.retry_count, item.max_retries)]

    async def process_pass(self) -> ProcessResult:
        deliveries = await self.select_due(self.clock())
        result = ProcessResult(total=len(deliveries))
        if not deliveries:
            return result

        if self.http_client is not None:
            await self._drain(deliveries, self.http_client, result)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                await self._drain(deliveries, client, result)

        logger.info(
            "Webhook queue pass finished",
            processed=result.processed,
            total=result.total,
            skipped=result.skipped,
        )
        return result

    async def _drain(
        self,
        deliveries: list[QueuedDelivery],
        client: httpx.AsyncClient,
        result: ProcessResult,
    ) -> None:
        for delivery in deliveries:
            outcome = await self.process_entry(delivery, client)
            if outcome == DispatchOutcome.delivered:
                result.processed += 1
            elif outcome == DispatchOutcome.skipped:
                result.skipped += 1

    async def process_entry(self, delivery: QueuedDelivery, client: httpx.AsyncClient) -> DispatchOutcome:
        try:
            entry = await self.repo.claim(delivery.id, self.clock(), self.claim_ttl)
            if entry is None:
                logger.info("Webhook queue entry is claimed elsewhere, skipping", entry_id=delivery.id)
                return DispatchOutcome.skipped

            response = await client.post(
                resolve_webhook_url(delivery.event_type, self.base_url),
                content=json.dumps(delivery.payload),
                headers=self.build_headers(),
                timeout=self.timeout,
            )
            if response.is_success:
                await self.repo.delete(entry)
                logger.info(
                    "Processed webhook queue entry",
                    entry_id=delivery.id,
                    event_type=delivery.event_type,
                )
                return DispatchOutcome.delivered
            error = format_http_error(response.status_code, response.text)
        except Exception as exc:  # noqa: BLE001
            await self.session.rollback()
            error = format_exception(exc)

        try:
            return await self.record_failure(delivery, error)
        except Exception:  # noqa: BLE001
            await self.session.rollback()
            logger.exception("Failed to record webhook queue failure", entry_id=delivery.id)
            return DispatchOutcome.skipped

    async def record_failure(self, delivery: QueuedDelivery, error: str) -> DispatchOutcome:
        entry = await self.repo.get(delivery.id, fresh=True)
        if entry is None:
            logger.warning("Webhook queue entry vanished before failure was recorded", entry_id=delivery.id)
            return DispatchOutcome.skipped

        now = self.clock()
        retry_count = delivery.retry_count + 1
        if is_exhausted(retry_count, delivery.max_retries):
            await self.repo.mark_failed(entry, retry_count=retry_count, failed_at=now, last_error=error)
            logger.error(
                "Permanently failed webhook queue entry after {} retries: {}",
                retry_count,
                error,
                entry_id=delivery.id,
                event_type=delivery.event_type,
            )
            return DispatchOutcome.failed

        next_retry_at = calculate_next_retry(retry_count, now)
        await self.repo.schedule_retry(
            entry,
            retry_count=retry_count,
            next_retry_at=next_retry_at,
            last_error=error,
        )
        logger.warning(
            "Retry scheduled for webhook queue entry (attempt {}): {}",
            retry_count + 1,
            error,
            entry_id=delivery.id,
            next_retry_at=next_retry_at.isoformat(),
        )
        return DispatchOutcome.retry_scheduled
