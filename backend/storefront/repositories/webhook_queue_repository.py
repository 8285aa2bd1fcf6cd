from datetime import datetime, timedelta
from typing import Any, Dict

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.base import utcnow
from storefront.models.enums import QueueEntryState
from storefront.models.webhook_queue import WebhookQueueEntry


class WebhookQueueRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, entry_id: int, *, fresh: bool = False) -> WebhookQueueEntry | None:
        query = select(WebhookQueueEntry).where(WebhookQueueEntry.id == entry_id)
        if fresh:
            query = query.execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_due(self, now: datetime) -> list[WebhookQueueEntry]:
        result = await self.session.execute(
            select(WebhookQueueEntry).where(
                WebhookQueueEntry.processed_at.is_(None),
                WebhookQueueEntry.failed_at.is_(None),
                WebhookQueueEntry.next_retry_at <= now,
            )
        )
        return list(result.scalars().all())

    async def list_entries(
        self,
        state: QueueEntryState | None = None,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> list[WebhookQueueEntry]:
        query = select(WebhookQueueEntry)
        if state == QueueEntryState.pending:
            query = query.where(WebhookQueueEntry.failed_at.is_(None))
        elif state == QueueEntryState.failed:
            query = query.where(WebhookQueueEntry.failed_at.is_not(None))
        query = query.order_by(WebhookQueueEntry.id).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def enqueue(
        self,
        event_type: str,
        payload: Dict[str, Any],
        *,
        max_retries: int,
        next_retry_at: datetime,
        last_error: str | None = None,
    ) -> WebhookQueueEntry:
        entry = WebhookQueueEntry(
            event_type=event_type,
            payload=payload,
            retry_count=0,
            max_retries=max_retries,
            next_retry_at=next_retry_at,
            last_error=last_error,
        )
        self.session.add(entry)
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def claim(self, entry_id: int, now: datetime, lease_seconds: int) -> WebhookQueueEntry | None:
        """Mark a pending entry in-flight unless another pass holds a live lease on it.

        Returns the claimed entry, or ``None`` when the row is leased elsewhere,
        already terminal or gone.
        """
        stale_before = now - timedelta(seconds=lease_seconds)
        result = await self.session.execute(
            update(WebhookQueueEntry)
            .where(
                WebhookQueueEntry.id == entry_id,
                WebhookQueueEntry.processed_at.is_(None),
                WebhookQueueEntry.failed_at.is_(None),
                or_(
                    WebhookQueueEntry.claimed_at.is_(None),
                    WebhookQueueEntry.claimed_at <= stale_before,
                ),
            )
            .values(claimed_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount != 1:
            return None
        return await self.get(entry_id, fresh=True)

    async def delete(self, entry: WebhookQueueEntry) -> None:
        await self.session.delete(entry)
        await self.session.commit()

    async def schedule_retry(
        self,
        entry: WebhookQueueEntry,
        *,
        retry_count: int,
        next_retry_at: datetime,
        last_error: str,
    ) -> WebhookQueueEntry:
        entry.retry_count = retry_count
        entry.next_retry_at = next_retry_at
        entry.last_error = last_error
        entry.claimed_at = None
        entry.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def mark_failed(
        self,
        entry: WebhookQueueEntry,
        *,
        retry_count: int,
        failed_at: datetime,
        last_error: str,
    ) -> WebhookQueueEntry:
        entry.retry_count = retry_count
        entry.failed_at = failed_at
        entry.last_error = last_error
        entry.claimed_at = None
        entry.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def requeue(self, entry: WebhookQueueEntry, now: datetime) -> WebhookQueueEntry:
        entry.failed_at = None
        entry.claimed_at = None
        entry.retry_count = 0
        entry.next_retry_at = now
        entry.updated_at = now
        await self.session.commit()
        await self.session.refresh(entry)
        return entry
