from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal

logger = get_logger(__name__)


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields one session per request.

    Services commit their own units of work; whatever is still pending when
    the request raises is rolled back before the session is returned to
    the pool.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            if session.in_transaction():
                logger.warning("Rolling back open transaction after request error")
                await session.rollback()
            raise
