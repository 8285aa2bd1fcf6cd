from typing import AsyncGenerator

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.core.config import Settings, get_settings
from storefront.core.security import verify_service_key
from storefront.db.session import get_session

security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator:
    async with get_session() as session:
        yield session


async def get_http_client(settings: Settings = Depends(get_settings)) -> AsyncGenerator:
    async with httpx.AsyncClient(timeout=settings.webhook_dispatch_timeout) as client:
        yield client


async def require_service_key(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> None:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if not verify_service_key(credentials.credentials, settings):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid service key")
