from enum import Enum


class QueueEntryState(str, Enum):
    pending = "pending"
    failed = "failed"


class DispatchOutcome(str, Enum):
    delivered = "delivered"
    retry_scheduled = "retry_scheduled"
    failed = "failed"
    skipped = "skipped"
