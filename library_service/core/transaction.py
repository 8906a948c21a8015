"""Ambient transaction handling.

The session that owns the currently open transaction is stored in a
context variable. Repositories pick it up through ``session_scope`` so a
unit of work can enlist several writes (for example a domain row and its
outbox message) in one commit without passing the session around.
"""
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

T = TypeVar("T")

_current_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "library_service_current_session", default=None
)


def current_session() -> Optional[AsyncSession]:
    return _current_session.get()


def in_transaction() -> bool:
    return _current_session.get() is not None


@asynccontextmanager
async def session_scope(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Yield the ambient session, or a short-lived one that commits on exit."""
    ambient = _current_session.get()
    if ambient is not None:
        yield ambient
        return

    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise


class Transactor:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def with_tx(self, unit: Callable[[], Awaitable[T]]) -> T:
        """Run ``unit`` atomically.

        An enclosing transaction is reused as is; otherwise a new one is
        opened, committed when ``unit`` returns and rolled back when it
        raises. A rollback failure is logged and never replaces the error
        raised by ``unit``.
        """
        if _current_session.get() is not None:
            return await unit()

        logger.debug("Starting transaction")
        async with self.session_maker() as session:
            token = _current_session.set(session)
            try:
                result = await unit()
            except BaseException:
                try:
                    await session.rollback()
                except Exception as e:
                    logger.error(f"Failed to rollback transaction: {e}", exc_info=True)
                raise
            finally:
                _current_session.reset(token)

            try:
                await session.commit()
            except Exception as e:
                logger.error(f"Failed to commit transaction: {e}", exc_info=True)
                raise

        return result
