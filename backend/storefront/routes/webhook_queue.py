from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api import deps
from storefront.core.config import Settings, get_settings
from storefront.models.base import utcnow
from storefront.models.enums import QueueEntryState
from storefront.repositories.webhook_queue_repository import WebhookQueueRepository
from storefront.schemas.webhook_queue import QueueEntryCreateRequest, QueueEntryResponse
from storefront.services.retry import calculate_next_retry

router = APIRouter(dependencies=[Depends(deps.require_service_key)])


@router.get("", response_model=list[QueueEntryResponse])
async def list_entries(
    state: QueueEntryState | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(deps.get_db),
):
    repo = WebhookQueueRepository(session)
    return await repo.list_entries(state, limit=limit, offset=offset)


@router.post("", response_model=QueueEntryResponse, status_code=status.HTTP_201_CREATED)
async def enqueue_entry(
    payload: QueueEntryCreateRequest,
    session: AsyncSession = Depends(deps.get_db),
    settings: Settings = Depends(get_settings),
):
    repo = WebhookQueueRepository(session)
    entry = await repo.enqueue(
        payload.event_type,
        payload.payload,
        max_retries=payload.max_retries or settings.webhook_queue_default_max_retries,
        next_retry_at=calculate_next_retry(0, utcnow()),
        last_error=payload.last_error,
    )
    logger.info("Queued webhook event for retry", entry_id=entry.id, event_type=entry.event_type)
    return entry


@router.get("/{entry_id}", response_model=QueueEntryResponse)
async def get_entry(entry_id: int, session: AsyncSession = Depends(deps.get_db)):
    repo = WebhookQueueRepository(session)
    entry = await repo.get(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Queue entry not found")
    return entry


@router.post("/{entry_id}/requeue", response_model=QueueEntryResponse)
async def requeue_entry(entry_id: int, session: AsyncSession = Depends(deps.get_db)):
    repo = WebhookQueueRepository(session)
    entry = await repo.get(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Queue entry not found")
    if not entry.is_failed:
        raise HTTPException(status_code=409, detail="Only failed entries can be requeued")
    entry = await repo.requeue(entry, utcnow())
    logger.info("Requeued failed webhook queue entry", entry_id=entry.id, event_type=entry.event_type)
    return entry
