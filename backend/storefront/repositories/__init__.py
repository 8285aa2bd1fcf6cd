from storefront.repositories.webhook_queue_repository import WebhookQueueRepository

__all__ = [
    "WebhookQueueRepository",
]
