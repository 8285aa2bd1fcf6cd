from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field

from storefront.core.config import DEFAULT_MAX_RETRIES
from storefront.models.base import NaiveUTCDateTime, TimestampedModel, utcnow


class WebhookQueueEntry(TimestampedModel, table=True):
    __tablename__ = "webhook_queue"

    id: Optional[int] = Field(default=None, primary_key=True)
    event_type: str = Field(index=True)
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    retry_count: int = Field(default=0, nullable=False)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, nullable=False)
    next_retry_at: datetime = Field(default_factory=utcnow, sa_type=NaiveUTCDateTime, index=True, nullable=False)
    processed_at: Optional[datetime] = Field(default=None, sa_type=NaiveUTCDateTime)
    failed_at: Optional[datetime] = Field(default=None, sa_type=NaiveUTCDateTime)
    last_error: Optional[str] = Field(default=None)
    claimed_at: Optional[datetime] = Field(default=None, sa_type=NaiveUTCDateTime)

    @property
    def is_failed(self) -> bool:
        return self.failed_at is not None
