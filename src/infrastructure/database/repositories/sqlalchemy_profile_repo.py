"""SQLAlchemy implementation of Profile repository."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import utcnow
from core.exceptions import ProfileNotFoundError, UniquenessConflictError
from domain.entities.audience import MemberCandidate
from domain.entities.money import quantize
from domain.entities.profile import IdentifierKind, Profile, ProfilePatch
from infrastructure.database.models import EventModel, ProfileModel


class SQLAlchemyProfileRepository:
    """SQLAlchemy implementation of IProfileRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, id: UUID, for_update: bool = False) -> Profile | None:
        """Get a profile by ID."""
        model = await self._get_model(id, for_update=for_update)
        return self._to_entity(model) if model else None

    async def find_by_identifier(
        self, kind: IdentifierKind, value: str, for_update: bool = False
    ) -> Profile | None:
        """Find a profile by one of its external identifiers."""
        column = getattr(ProfileModel, kind.value)
        stmt = (
            select(ProfileModel)
            .where(column == value)
            .order_by(ProfileModel.created_at, ProfileModel.id)
            .limit(1)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def create(self, profile: Profile) -> Profile:
        """Create a new profile."""
        model = self._to_model(profile)
        self._session.add(model)
        await self._flush_unique()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def update(self, id: UUID, patch: ProfilePatch) -> Profile:
        """Apply a patch to a locked profile row."""
        model = await self._get_model(id, for_update=True)
        if not model:
            raise ProfileNotFoundError(str(id))

        profile = self._to_entity(model)
        profile.apply_patch(patch)

        model.email = profile.email
        model.user_id = profile.user_id
        model.anonymous_id = profile.anonymous_id
        model.traits = profile.traits
        model.last_seen_at = _later_of(ProfileModel.last_seen_at, profile.last_seen_at)
        model.updated_at = profile.updated_at

        await self._flush_unique()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def increment_aggregates(
        self, profile: Profile, orders: int, spend: Decimal
    ) -> Profile:
        """Add to the stored counters in one UPDATE and advance last_seen_at.

        The arithmetic runs in the database against the committed row, so
        concurrent purchases add up even where row locks are unavailable.
        """
        stmt = (
            update(ProfileModel)
            .where(ProfileModel.id == profile.id)
            .values(
                total_orders=ProfileModel.total_orders + orders,
                total_spend=ProfileModel.total_spend + spend,
                last_seen_at=_later_of(ProfileModel.last_seen_at, profile.last_seen_at),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise ProfileNotFoundError(str(profile.id))

        model = await self._get_model(profile.id, refresh=True)
        if not model:
            raise ProfileNotFoundError(str(profile.id))
        return self._to_entity(model)

    async def get_all(self, limit: int = 50, offset: int = 0) -> list[Profile]:
        """List profiles, most recently seen first."""
        stmt = (
            select(ProfileModel)
            .order_by(ProfileModel.last_seen_at.desc(), ProfileModel.id)
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def list_candidates(self) -> list[MemberCandidate]:
        """Profiles joined with their latest event time in one query."""
        last_event = (
            select(
                EventModel.profile_id.label("profile_id"),
                func.max(EventModel.occurred_at).label("last_event_at"),
            )
            .where(EventModel.profile_id.is_not(None))
            .group_by(EventModel.profile_id)
            .subquery()
        )
        stmt = (
            select(ProfileModel.id, ProfileModel.total_spend, last_event.c.last_event_at)
            .outerjoin(last_event, last_event.c.profile_id == ProfileModel.id)
            .order_by(ProfileModel.id)
        )
        result = await self._session.execute(stmt)
        return [
            MemberCandidate(
                profile_id=row.id,
                total_spend=quantize(row.total_spend),
                last_event_at=row.last_event_at,
            )
            for row in result
        ]

    async def _get_model(
        self, id: UUID, for_update: bool = False, refresh: bool = False
    ) -> ProfileModel | None:
        stmt = select(ProfileModel).where(ProfileModel.id == id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _flush_unique(self) -> None:
        """Flush, reporting a unique-constraint violation as a conflict."""
        try:
            await self._session.flush()
        except IntegrityError as exc:
            orig = str(exc.orig).lower() if exc.orig else ""
            if "unique" in orig or "duplicate" in orig:
                raise UniquenessConflictError() from exc
            raise

    def _to_entity(self, model: ProfileModel) -> Profile:
        """Convert ORM model to domain entity."""
        return profile_from_model(model)

    def _to_model(self, entity: Profile) -> ProfileModel:
        """Convert domain entity to ORM model."""
        return ProfileModel(
            id=entity.id,
            primary_identifier=entity.primary_identifier,
            email=entity.email,
            user_id=entity.user_id,
            anonymous_id=entity.anonymous_id,
            traits=entity.traits,
            total_orders=entity.total_orders,
            total_spend=entity.total_spend,
            first_seen_at=entity.first_seen_at,
            last_seen_at=entity.last_seen_at,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


def _later_of(column: Any, value: datetime) -> Any:
    """SQL expression for the later of a stored timestamp and ``value``."""
    return case((column < value, value), else_=column)


def profile_from_model(model: ProfileModel) -> Profile:
    """Convert a profile row to the domain entity."""
    return Profile(
        id=model.id,
        primary_identifier=model.primary_identifier,
        email=model.email,
        user_id=model.user_id,
        anonymous_id=model.anonymous_id,
        traits=dict(model.traits or {}),
        total_orders=model.total_orders,
        total_spend=quantize(model.total_spend),
        first_seen_at=model.first_seen_at,
        last_seen_at=model.last_seen_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
