from storefront.schemas.webhook_queue import ProcessQueueResponse, QueueEntryCreateRequest, QueueEntryResponse

__all__ = [
    "ProcessQueueResponse",
    "QueueEntryCreateRequest",
    "QueueEntryResponse",
]
