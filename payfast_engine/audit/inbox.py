"""
Append-only inbox of webhook notifications.

PayFast may deliver the same notification more than once and in any order.
Each (transaction id, event type, verified) triple is recorded once;
redeliveries are acknowledged but leave the inbox untouched. Verified and
rejected notifications are deduplicated separately, so a forged notification
naming a real transaction never shadows the genuine one. Records are never
modified or deleted, so the inbox doubles as the audit trail of what the
gateway told us.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payfast_engine.models.payment import PayFastEvent
from payfast_engine.models.webhook import WebhookEventRecord

logger = logging.getLogger("payfast_engine.inbox")


async def find_event(
    session: AsyncSession, transaction_id: str, event_type: str, verified: bool = True
) -> Optional[WebhookEventRecord]:
    result = await session.execute(
        select(WebhookEventRecord).where(
            WebhookEventRecord.transaction_id == transaction_id,
            WebhookEventRecord.event_type == event_type,
            WebhookEventRecord.verified == int(verified),
        )
    )
    return result.scalar_one_or_none()


async def record_event(session: AsyncSession, event: PayFastEvent) -> tuple[WebhookEventRecord, bool]:
    """
    Store ``event`` unless the same notification was already recorded.

    A concurrent delivery can insert the same notification between the
    lookup and the insert. The unique constraint then rejects ours; the
    session is rolled back and the winner's record is returned as a duplicate.

    Args:
        session: Database session. The caller commits.
        event: Event built by the processor from the raw notification.

    Returns:
        The stored record and whether it was newly created.
    """
    verified = event.verified
    existing = await find_event(session, event.id, event.type, verified)
    if existing is not None:
        logger.info("INBOX | duplicate txn=%s type=%s verified=%s ignored", event.id, event.type, verified)
        return existing, False

    entry = WebhookEventRecord(
        transaction_id=event.id,
        event_type=event.type,
        verified=int(verified),
        payload=json.dumps(event.data),
        received_at=datetime.now(timezone.utc),
    )
    session.add(entry)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        existing = await find_event(session, event.id, event.type, verified)
        if existing is None:
            raise
        logger.info("INBOX | concurrent duplicate txn=%s type=%s verified=%s ignored", event.id, event.type, verified)
        return existing, False

    logger.info(
        "INBOX | txn=%s type=%s verified=%s | %s",
        event.id,
        event.type,
        verified,
        entry.payload[:200],
    )
    return entry, True


async def list_events(session: AsyncSession, transaction_id: str) -> list[WebhookEventRecord]:
    result = await session.execute(
        select(WebhookEventRecord)
        .where(WebhookEventRecord.transaction_id == transaction_id)
        .order_by(WebhookEventRecord.id.asc())
    )
    return list(result.scalars().all())
