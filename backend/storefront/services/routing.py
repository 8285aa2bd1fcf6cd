FUNCTIONS_PATH = "/functions/v1"
SUBSCRIPTION_WEBHOOK = "razorpay-subscription-webhook"
PAYMENT_WEBHOOK = "razorpay-webhook"

SUBSCRIPTION_EVENTS = frozenset(
    {
        "subscription.authenticated",
        "subscription.activated",
        "subscription.charged",
        "subscription.cancelled",
        "subscription.paused",
        "subscription.completed",
        "subscription.payment_failed",
    }
)


def is_subscription_event(event_type: str) -> bool:
    return event_type in SUBSCRIPTION_EVENTS


def resolve_webhook_url(event_type: str, base_url: str) -> str:
    """Return the handler a queued event is redelivered to.

    Subscription lifecycle events go to the subscription handler, everything
    else, unknown event types included, to the general payment handler.
    """
    base = base_url[:-1] if base_url.endswith("/") else base_url
    handler = SUBSCRIPTION_WEBHOOK if is_subscription_event(event_type) else PAYMENT_WEBHOOK
    return f"{base}{FUNCTIONS_PATH}/{handler}"
