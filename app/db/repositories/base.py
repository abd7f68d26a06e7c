"""
Base Repository for storefront database operations.

Provides the shared plumbing for every repository: connection management,
session scoping (own transaction or the caller's) and operation logging.
"""

import functools
import logging
from abc import ABC
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import AsyncIterator, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.connection import ConnDB, get_db_connection
from app.utils.error_handler import PersistenceException

logger = logging.getLogger(__name__)


def log_operation(operation_name: str = None) -> Callable:
    """
    Decorator for logging database operations.

    Args:
        operation_name: Optional custom name for the operation

    Returns:
        Decorated function with logging
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            op_name = operation_name or f"{self.__class__.__name__}.{func.__name__}"
            logger.debug(f"Starting operation: {op_name}")

            try:
                result = await func(self, *args, **kwargs)
                logger.debug(f"Operation successful: {op_name}")
                return result
            except (SQLAlchemyError, OverflowError) as e:
                logger.error(f"Operation failed: {op_name} - {e}")
                raise PersistenceException(
                    message=f"{op_name} failed: {str(e)}",
                    operation=op_name,
                ) from e

        return wrapper

    return decorator


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class BaseRepository(ABC):
    """
    Abstract base repository.

    Every write method accepts an optional ``session``. When given, the
    statement joins the caller's transaction and nothing is committed here;
    otherwise the repository opens and commits its own transaction.
    """

    def __init__(self, conn_db: Optional[ConnDB] = None):
        """
        Initialize the base repository.

        Args:
            conn_db: Optional database connection. If not provided, uses global connection.
        """
        self.conn_db: ConnDB = conn_db or get_db_connection()
        self._repository_name: str = self.__class__.__name__
        logger.debug(f"{self._repository_name} instantiated")

    @asynccontextmanager
    async def session_scope(self, session: Optional[AsyncSession] = None) -> AsyncIterator[AsyncSession]:
        """
        Yield the caller's session, or a fresh transactional one.

        Args:
            session: Session of an enclosing transaction, if any
        """
        if session is not None:
            yield session
            return

        async with self.conn_db.transaction() as own_session:
            yield own_session

    def __repr__(self) -> str:
        """String representation of the repository."""
        return f"<{self._repository_name}(conn_db={self.conn_db!r})>"
