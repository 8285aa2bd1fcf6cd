from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.config import settings
from storefront.db.session import init_db
from storefront.routes import (
    functions,
    webhook_queue,
)

app = FastAPI(title="Storefront webhook queue", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup() -> None:
    await init_db()


app.include_router(functions.router, prefix="/functions/v1", tags=["functions"])
app.include_router(webhook_queue.router, prefix="/api/webhook-queue", tags=["webhook-queue"])


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    return {"status": "ok"}
