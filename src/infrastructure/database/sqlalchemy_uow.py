"""SQLAlchemy Unit of Work implementation."""

from typing import Any, Optional

import structlog
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.exceptions import (
    PayloadValidationError,
    StoreUnavailableError,
    UniquenessConflictError,
)
from infrastructure.database.repositories.sqlalchemy_audience_repo import (
    SQLAlchemyAudienceRepository,
)
from infrastructure.database.repositories.sqlalchemy_event_repo import SQLAlchemyEventRepository
from infrastructure.database.repositories.sqlalchemy_profile_repo import (
    SQLAlchemyProfileRepository,
)

logger = structlog.get_logger()


class SQLAlchemyUnitOfWork:
    """Unit of Work implementation using SQLAlchemy.

    One session is one transaction. Driver failures are rolled back and
    re-raised as domain errors: unique violations as UniquenessConflictError,
    values the column types cannot hold as PayloadValidationError, and
    everything else (connection loss, timeouts) as StoreUnavailableError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    @property
    def profiles(self) -> SQLAlchemyProfileRepository:
        """Get profile repository."""
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return SQLAlchemyProfileRepository(self._session)

    @property
    def events(self) -> SQLAlchemyEventRepository:
        """Get event log repository."""
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return SQLAlchemyEventRepository(self._session)

    @property
    def audiences(self) -> SQLAlchemyAudienceRepository:
        """Get audience repository."""
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return SQLAlchemyAudienceRepository(self._session)

    async def commit(self) -> None:
        """Commit the current transaction."""
        if self._session:
            await self._session.commit()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        if self._session:
            await self._session.rollback()

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        """Enter the context manager and create session."""
        self._session = self._session_factory()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        """Exit the context manager, translating driver errors, and cleanup."""
        if not self._session:
            return
        try:
            if exc_type:
                await self.rollback()
        finally:
            await self._session.close()
            self._session = None

        if isinstance(exc_val, IntegrityError):
            orig = str(exc_val.orig).lower() if exc_val.orig else ""
            if "unique" in orig or "duplicate" in orig:
                raise UniquenessConflictError() from exc_val
        elif isinstance(exc_val, DataError):
            logger.warning("store_rejected_value", error=str(exc_val))
            raise PayloadValidationError("Value is out of range for storage") from exc_val
        elif isinstance(exc_val, (OperationalError, DBAPIError)):
            logger.error("store_unavailable", error=str(exc_val))
            raise StoreUnavailableError() from exc_val
