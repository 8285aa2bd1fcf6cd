from datetime import datetime, timedelta

BASE_DELAY_SECONDS = 60
ERROR_TEXT_LIMIT = 500


def retry_delay(retry_count: int) -> timedelta:
    """Backoff before the next attempt; ``retry_count`` is the already incremented value."""
    return timedelta(seconds=BASE_DELAY_SECONDS * 2**retry_count)


def calculate_next_retry(retry_count: int, now: datetime) -> datetime:
    return now + retry_delay(retry_count)


def is_exhausted(retry_count: int, max_retries: int) -> bool:
    return retry_count >= max_retries


def format_http_error(status_code: int, body: str) -> str:
    return f"HTTP {status_code}: {body[:ERROR_TEXT_LIMIT]}"


def format_exception(exc: BaseException) -> str:
    message = str(exc) or exc.__class__.__name__
    return message[:ERROR_TEXT_LIMIT]
