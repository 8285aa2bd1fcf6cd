from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MAX_RETRIES = 5
DEFAULT_DISPATCH_TIMEOUT = 15.0
DEFAULT_CLAIM_TTL = 300


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./storefront.db"
    redis_url: str = "redis://localhost:6379/0"

    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_anon_key: str | None = None
    process_webhook_queue_secret: str | None = None

    webhook_dispatch_timeout: float = DEFAULT_DISPATCH_TIMEOUT
    webhook_queue_claim_ttl: int = DEFAULT_CLAIM_TTL
    webhook_queue_poll_interval: int = 60
    webhook_queue_default_max_retries: int = DEFAULT_MAX_RETRIES
    webhook_queue_pass_lock_enabled: bool = False
    webhook_queue_pass_lock_ttl: int = 600

    cors_origins: List[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    @field_validator("supabase_anon_key", "process_webhook_queue_secret", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    def get_dispatch_key(self) -> str:
        """Bearer used on redelivery: the anon key, or the service key when unset."""
        return self.supabase_anon_key or self.supabase_service_role_key


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
