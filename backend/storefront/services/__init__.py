from storefront.services.queue import QueuePassLock
from storefront.services.queue_processor import ProcessResult, QueueConfigurationError, WebhookQueueProcessor

__all__ = [
    "ProcessResult",
    "QueueConfigurationError",
    "QueuePassLock",
    "WebhookQueueProcessor",
]
