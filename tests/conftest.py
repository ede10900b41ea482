"""Shared test fixtures."""

import base64
import json

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payfast_engine.codec.checksum import Sha256ChecksumCodec, sign
from payfast_engine.config import Settings
from payfast_engine.engine.processor import PayFastProcessor
from payfast_engine.engine.reconciler import StatusReconciler
from payfast_engine.engine.sequence import AttemptSequence
from payfast_engine.models.webhook import Base
from payfast_engine.providers.mock_provider import MockPayFastGateway

SALT = "099eb0cd-02cf-4e2a-8aca-3e6c6aff0399"


class RecordingSleep:
    """Stands in for asyncio.sleep so backoff tests never wait."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds):
        self.calls.append(float(seconds))


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        salt=SALT,
        salt_index=1,
        merchant_id="PGTESTPAYUAT",
        callback_url="https://shop.example.com",
        redirect_url="https://shop.example.com/checkout/return",
        redirect_mode="REDIRECT",
        mode="sandbox",
    )


@pytest.fixture
def codec(settings):
    return Sha256ChecksumCodec(settings.salt, settings.salt_index)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_processor(settings, recording_sleep):
    """Build a processor around a scripted gateway, with instant backoff."""

    def _make(status_script=None, **gateway_kwargs):
        gateway = MockPayFastGateway(status_script, settings=settings, **gateway_kwargs)
        reconciler = StatusReconciler(gateway, settings, sleep=recording_sleep)
        return PayFastProcessor(
            gateway=gateway,
            settings=settings,
            reconciler=reconciler,
            sequence=AttemptSequence(),
            refund_sequence=AttemptSequence(),
        )

    return _make


@pytest.fixture
def session_data():
    """Session data as stored by the host after initiation."""
    return {
        "success": True,
        "code": "SUCCESS",
        "message": "Payment initiated",
        "data": {"merchantId": "PGTESTPAYUAT", "merchantTransactionId": "cart_01_1"},
        "customer": {"id": "cus_01", "email": "buyer@example.com", "phone": None},
        "state": "initiated",
    }


@pytest.fixture
def encode_webhook():
    def _encode(payload: dict) -> str:
        return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")

    return _encode


@pytest.fixture
def sign_webhook(settings):
    def _sign(encoded: str) -> str:
        return sign(encoded, settings.salt, settings.salt_index)

    return _sign


@pytest_asyncio.fixture
async def session_factory():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
