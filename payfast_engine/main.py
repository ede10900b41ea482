"""
PayFast Engine — payment-status reconciliation service.

Receives PayFast webhook notifications and records them in an idempotent
inbox. The payment processor itself is a library: order systems import
``payfast_engine.engine.processor.PayFastProcessor`` directly.

Start the server:
    uvicorn payfast_engine.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from payfast_engine.api.hooks import router as hooks_router
from payfast_engine.config import settings
from payfast_engine.database import engine, init_db

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


logger = logging.getLogger("payfast_engine.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the webhook inbox; release its connections on shutdown."""
    await init_db()
    logger.info("PayFast engine started in %s mode against %s", settings.mode, settings.base_url)
    yield
    await engine.dispose()


app = FastAPI(
    title="PayFast Engine",
    description=(
        "Asynchronous payment-status reconciliation for the PayFast gateway: "
        "checksum-verified webhooks, backoff polling and idempotent status transitions."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(hooks_router)


@app.get("/health", tags=["health"])
async def health():
    return {"ok": True, "mode": settings.mode}
