from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from storefront.core.config import settings
from storefront.models import webhook_queue  # noqa: F401

engine = create_async_engine(settings.database_url, echo=False, future=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def get_session() -> AsyncSession:
    async with SessionLocal() as session:
        yield session


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
        if "postgresql" in settings.database_url:
            await conn.execute(
                text(
                    "ALTER TABLE webhook_queue ADD COLUMN IF NOT EXISTS claimed_at TIMESTAMP"
                )
            )
            await conn.execute(
                text(
                    "ALTER TABLE webhook_queue ALTER COLUMN max_retries SET DEFAULT 5"
                )
            )
            await conn.execute(
                text(
                    "CREATE INDEX IF NOT EXISTS ix_webhook_queue_due "
                    "ON webhook_queue (next_retry_at) WHERE processed_at IS NULL AND failed_at IS NULL"
                )
            )
