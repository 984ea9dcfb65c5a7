"""Database utility functions."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError, InterfaceError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# SQLite lock contention with the dashboard reader, or a dropped PostgreSQL connection
TRANSIENT_ERRORS = (
    "database is locked",
    "connection reset",
    "connection closed",
    "server closed",
)


async def retry_on_lock(
    coro_func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 0.1,
) -> T:
    """Run ``coro_func``, retrying transient database errors with exponential backoff.

    Any other error, or the last transient one, propagates.
    """
    for attempt in range(max_retries):
        try:
            return await coro_func()
        except (OperationalError, InterfaceError) as e:
            if attempt == max_retries - 1 or not any(msg in str(e).lower() for msg in TRANSIENT_ERRORS):
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(f"Database busy, retrying in {delay}s (attempt {attempt + 1}/{max_retries})")
            await asyncio.sleep(delay)
