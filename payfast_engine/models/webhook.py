"""SQLAlchemy models for the webhook event inbox."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WebhookEventRecord(Base):
    """
    One verified-or-rejected webhook notification, append-only.

    The (transaction_id, event_type, verified) triple is unique so a gateway
    that redelivers the same notification does not produce a second record,
    while a forged notification for the same transaction cannot occupy the
    slot of the genuine one.
    """

    __tablename__ = "webhook_events"
    __table_args__ = (
        UniqueConstraint("transaction_id", "event_type", "verified", name="uq_webhook_txn_type_verified"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String(64), nullable=False, index=True)
    event_type = Column(String(40), nullable=False)
    verified = Column(Integer, nullable=False, default=0)
    payload = Column(Text, nullable=True)  # JSON of the event data
    received_at = Column(DateTime(timezone=True), default=_utcnow)
