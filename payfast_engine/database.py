"""
Storage for the webhook inbox.

The inbox is the only persistent state the engine owns; payment sessions
live with the host. Sessions do not expire on commit so a recorded event
can still be read back into the webhook acknowledgement.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payfast_engine.config import settings
from payfast_engine.models.webhook import Base

logger = logging.getLogger("payfast_engine.database")

engine = create_async_engine(settings.database_url, echo=settings.enabled_debug_logging)
inbox_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db():
    """Create the inbox table if it is missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("webhook inbox ready at %s", engine.url.render_as_string(hide_password=True))


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one inbox session per webhook request."""
    async with inbox_session() as session:
        yield session
