from storefront.models.webhook_queue import WebhookQueueEntry

__all__ = [
    "WebhookQueueEntry",
]
