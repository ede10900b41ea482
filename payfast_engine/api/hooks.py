"""
PayFast webhook endpoints.

POST /payfast/hooks                   — Receive a server-to-server notification.
GET  /payfast/hooks/{transaction_id}  — Notifications recorded for a transaction.
"""

import json
import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from payfast_engine.audit.inbox import list_events, record_event
from payfast_engine.database import get_session
from payfast_engine.engine.processor import PayFastProcessor

logger = logging.getLogger("payfast_engine.hooks")

router = APIRouter(prefix="/payfast/hooks", tags=["webhooks"])


class WebhookBody(BaseModel):
    response: str


class WebhookAck(BaseModel):
    received: bool
    duplicate: bool
    type: str
    id: str


class RecordedEvent(BaseModel):
    id: int
    event_type: str
    verified: bool
    data: Optional[dict] = None
    received_at: Optional[str]


@lru_cache
def get_processor() -> PayFastProcessor:
    return PayFastProcessor()


@router.post("", response_model=WebhookAck)
async def receive_webhook(
    body: WebhookBody,
    x_verify: str = Header(default=""),
    processor: PayFastProcessor = Depends(get_processor),
    session: AsyncSession = Depends(get_session),
):
    """
    Verify and record one notification.

    Always answers 200 so the gateway stops redelivering; forged or
    malformed notifications are recorded as PAYMENT_ERROR events.
    """
    event = processor.construct_webhook_event(body.response, x_verify)
    _, created = await record_event(session, event)
    await session.commit()
    return WebhookAck(received=True, duplicate=not created, type=event.type, id=event.id)


@router.get("/{transaction_id}", response_model=list[RecordedEvent])
async def get_transaction_events(transaction_id: str, session: AsyncSession = Depends(get_session)):
    """Recorded notifications for a transaction, in arrival order."""
    records = await list_events(session, transaction_id)
    events = []
    for record in records:
        try:
            data = json.loads(record.payload) if record.payload else None
        except (json.JSONDecodeError, TypeError):
            data = {"raw": record.payload}
        events.append(RecordedEvent(
            id=record.id,
            event_type=record.event_type,
            verified=bool(record.verified),
            data=data,
            received_at=record.received_at.isoformat() if record.received_at else None,
        ))
    return events
