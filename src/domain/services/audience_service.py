"""Audience service: definition, rebuild and membership reads."""

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog

from core.clock import utcnow
from core.exceptions import AudienceNotFoundError, PayloadValidationError
from domain.entities.audience import (
    DEFAULT_RECENCY_WINDOW_DAYS,
    Audience,
    AudienceDefinition,
    AudienceMember,
    MemberCandidate,
)
from domain.entities.profile import ProfileSummary
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


class AudienceService:
    """Service layer for audience business logic."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        default_recency_days: int = DEFAULT_RECENCY_WINDOW_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._default_recency_days = default_recency_days
        self._clock = clock

    async def create(self, name: Any, definition: Any) -> Audience:
        """Create an audience from a raw definition.

        Missing fields are stored with their defaults so later rebuilds
        evaluate the same explicit rule.
        """
        if not isinstance(name, str) or not name.strip():
            raise PayloadValidationError("name is required", field="name")
        parsed = AudienceDefinition.parse(definition, self._default_recency_days)

        async with self._uow_factory() as uow:
            audience = await uow.audiences.create(
                Audience(name=name.strip(), definition=parsed)
            )
            await uow.commit()

        logger.info(
            "audience_created",
            audience_id=str(audience.id),
            definition=parsed.to_dict(),
        )
        return audience

    async def get(self, audience_id: UUID) -> Audience:
        """Get an audience by ID."""
        async with self._uow_factory() as uow:
            audience = await uow.audiences.get(audience_id)
            if not audience:
                raise AudienceNotFoundError(str(audience_id))
            return audience

    async def get_all(self) -> list[Audience]:
        """List audiences, newest first."""
        async with self._uow_factory() as uow:
            return await uow.audiences.get_all()  # type: ignore[no-any-return]

    @staticmethod
    def select_members(
        definition: AudienceDefinition,
        candidates: Iterable[MemberCandidate],
        now: datetime,
    ) -> list[UUID]:
        """Profile IDs satisfying the definition at ``now``."""
        rule = definition.to_rule()
        return [c.profile_id for c in candidates if rule.matches(c, now)]

    async def rebuild(self, audience_id: UUID) -> int:
        """Recompute membership from scratch and swap it in atomically.

        The candidate read and the swap run in separate transactions, so no
        lock is held while rules are evaluated. Events ingested meanwhile may
        or may not be reflected; the swap itself is all-or-nothing.

        Returns the new member count.
        """
        now = self._clock()

        async with self._uow_factory() as uow:
            audience = await uow.audiences.get(audience_id)
            if not audience:
                raise AudienceNotFoundError(str(audience_id))
            candidates = await uow.profiles.list_candidates()

        member_ids = self.select_members(audience.definition, candidates, now)

        async with self._uow_factory() as uow:
            locked = await uow.audiences.get(audience_id, for_update=True)
            if not locked:
                raise AudienceNotFoundError(str(audience_id))
            count = await uow.audiences.replace_members(
                audience_id,
                [
                    AudienceMember(audience_id=audience_id, profile_id=profile_id, added_at=now)
                    for profile_id in member_ids
                ],
                built_at=now,
            )
            await uow.commit()

        logger.info(
            "audience_rebuilt",
            audience_id=str(audience_id),
            candidate_count=len(candidates),
            member_count=count,
        )
        return count  # type: ignore[no-any-return]

    async def list_members(self, audience_id: UUID) -> list[ProfileSummary]:
        """Member summaries, most recently seen first."""
        async with self._uow_factory() as uow:
            audience = await uow.audiences.get(audience_id)
            if not audience:
                raise AudienceNotFoundError(str(audience_id))
            profiles = await uow.audiences.get_member_profiles(audience_id)
            return [ProfileSummary.from_profile(profile) for profile in profiles]
