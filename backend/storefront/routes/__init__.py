from storefront.routes import (
    functions,
    webhook_queue,
)

__all__ = [
    "functions",
    "webhook_queue",
]
