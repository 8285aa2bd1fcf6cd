from __future__ import annotations

import argparse
import asyncio
import logging

import httpx

from storefront.core.config import settings
from storefront.db.session import SessionLocal
from storefront.services.queue import QueuePassLock
from storefront.services.queue_processor import ProcessResult, WebhookQueueProcessor

LOGGER = logging.getLogger("storefront.queue_poller")
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

MIN_INTERVAL_SECONDS = 5


async def poll_once() -> ProcessResult | None:
    """Run one pass; ``None`` means another pass held the lock."""
    if settings.webhook_queue_pass_lock_enabled:
        async with QueuePassLock.hold() as acquired:
            if not acquired:
                LOGGER.info("another pass holds the queue lock, skipping")
                return None
            return await _run_pass()
    return await _run_pass()


async def _run_pass() -> ProcessResult:
    async with httpx.AsyncClient(timeout=settings.webhook_dispatch_timeout) as client:
        async with SessionLocal() as session:
            processor = WebhookQueueProcessor.from_settings(session, settings, http_client=client)
            result = await processor.process_pass()
    LOGGER.info(
        "pass done: processed=%s total=%s skipped=%s",
        result.processed,
        result.total,
        result.skipped,
    )
    return result


async def run_poller(*, once: bool) -> None:
    interval = max(MIN_INTERVAL_SECONDS, settings.webhook_queue_poll_interval)
    LOGGER.info("Webhook queue poller started (interval=%ss)", interval)

    while True:
        try:
            await poll_once()
        except Exception:
            LOGGER.exception("poll iteration failed")
        if once:
            break
        await asyncio.sleep(interval)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Storefront webhook queue poller")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    args = parser.parse_args()
    asyncio.run(run_poller(once=args.once))
