from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

# Plain DateTime keeps the column naive on every SQLModel release.
NaiveUTCDateTime = DateTime(timezone=False)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every column in the store uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampedModel(SQLModel):
    created_at: datetime = Field(default_factory=utcnow, sa_type=NaiveUTCDateTime, nullable=False)
    updated_at: Optional[datetime] = Field(default=None, sa_type=NaiveUTCDateTime)
