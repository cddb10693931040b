"""SQLAlchemy implementation of the Event log repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.event import Event
from infrastructure.database.models import EventModel


class SQLAlchemyEventRepository:
    """SQLAlchemy implementation of IEventRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, event: Event) -> Event:
        """Append an event to the log."""
        model = self._to_model(event)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def last_event_at(self, profile_id: UUID) -> datetime | None:
        """Latest occurred_at for a profile."""
        stmt = select(func.max(EventModel.occurred_at)).where(EventModel.profile_id == profile_id)
        result = await self._session.execute(stmt)
        return result.scalar()

    async def for_profile(
        self, profile_id: UUID, limit: int | None = None, offset: int = 0
    ) -> list[Event]:
        """Events for a profile, newest first."""
        stmt = (
            select(EventModel)
            .where(EventModel.profile_id == profile_id)
            .order_by(EventModel.occurred_at.desc(), EventModel.created_at.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    def _to_entity(self, model: EventModel) -> Event:
        """Convert ORM model to domain entity."""
        return Event(
            id=model.id,
            profile_id=model.profile_id,
            user_id=model.user_id,
            anonymous_id=model.anonymous_id,
            event_type=model.event_type,
            properties=dict(model.properties or {}),
            occurred_at=model.occurred_at,
            created_at=model.created_at,
        )

    def _to_model(self, entity: Event) -> EventModel:
        """Convert domain entity to ORM model."""
        return EventModel(
            id=entity.id,
            profile_id=entity.profile_id,
            user_id=entity.user_id,
            anonymous_id=entity.anonymous_id,
            event_type=entity.event_type,
            properties=entity.properties,
            occurred_at=entity.occurred_at,
            created_at=entity.created_at,
        )
