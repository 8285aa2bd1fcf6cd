import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api import deps
from storefront.core.config import Settings, get_settings
from storefront.schemas import ProcessQueueResponse
from storefront.services.queue import QueuePassLock
from storefront.services.queue_processor import QueueConfigurationError, WebhookQueueProcessor

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _json(content: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


@router.api_route(
    "/process-webhook-queue",
    methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    response_model=ProcessQueueResponse,
)
async def process_webhook_queue(
    request: Request,
    session: AsyncSession = Depends(deps.get_db),
    http_client: httpx.AsyncClient = Depends(deps.get_http_client),
    settings: Settings = Depends(get_settings),
):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    try:
        processor = WebhookQueueProcessor.from_settings(session, settings, http_client=http_client)
    except QueueConfigurationError as exc:
        return _json({"error": str(exc)}, status_code=500)

    try:
        if settings.webhook_queue_pass_lock_enabled:
            async with QueuePassLock.hold() as acquired:
                if not acquired:
                    logger.info("Webhook queue pass already running, nothing to do")
                    return _summary(ProcessQueueResponse(processed=0, total=0, message="Another pass is in progress"))
                return await _run_pass(processor)
        return await _run_pass(processor)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Error in process-webhook-queue")
        return _json({"error": str(exc) or "Internal server error"}, status_code=500)


async def _run_pass(processor: WebhookQueueProcessor) -> JSONResponse:
    result = await processor.process_pass()
    summary = ProcessQueueResponse(processed=result.processed, total=result.total)
    if result.total == 0:
        summary.message = "No items to process"
    return _summary(summary)


def _summary(summary: ProcessQueueResponse) -> JSONResponse:
    return _json(summary.model_dump(exclude_none=True))
