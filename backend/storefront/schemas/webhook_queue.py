from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class QueueEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_type: str
    payload: Dict[str, Any]
    retry_count: int
    max_retries: int
    next_retry_at: datetime
    processed_at: Optional[datetime]
    failed_at: Optional[datetime]
    last_error: Optional[str]
    claimed_at: Optional[datetime]
    created_at: datetime
    updated_at: Optional[datetime]


class QueueEntryCreateRequest(BaseModel):
    event_type: str = Field(min_length=1)
    payload: Dict[str, Any]
    last_error: str | None = None
    max_retries: int | None = Field(default=None, ge=1)


class ProcessQueueResponse(BaseModel):
    processed: int
    total: int
    message: str | None = None
