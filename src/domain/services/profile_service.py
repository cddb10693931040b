"""Profile service: identify calls and profile browsing."""

from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog

from core.clock import as_naive_utc, utcnow
from core.exceptions import MissingIdentifierError, ProfileNotFoundError
from domain.entities.bag import validate_bag
from domain.entities.event import Event
from domain.entities.profile import Identifiers, Profile
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.identity_resolver import IdentityResolver

logger = structlog.get_logger()


class ProfileService:
    """Service layer for profile identity and reads."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        resolver: IdentityResolver | None = None,
        max_page_size: int = 200,
    ) -> None:
        self._uow_factory = uow_factory
        self._resolver = resolver or IdentityResolver()
        self._max_page_size = max_page_size

    async def identify(
        self,
        identifiers: Identifiers,
        traits: Any = None,
        observed_at: datetime | None = None,
    ) -> Profile:
        """Resolve (or create) the profile and merge traits into it.

        Identify never creates a profile without at least one identifier.
        """
        if identifiers.is_empty:
            raise MissingIdentifierError()
        trait_bag = validate_bag(traits, "traits")
        seen_at = as_naive_utc(observed_at) if observed_at else utcnow()

        async def attempt() -> Profile:
            async with self._uow_factory() as uow:
                profile = await self._resolver.resolve(
                    uow, identifiers, traits=trait_bag, seen_at=seen_at
                )
                await uow.commit()
                return profile

        return await self._resolver.with_conflict_retry(attempt)

    async def get_with_last_event(self, profile_id: UUID) -> tuple[Profile, datetime | None]:
        """Get a profile together with the time of its latest event."""
        async with self._uow_factory() as uow:
            profile = await uow.profiles.get(profile_id)
            if not profile:
                raise ProfileNotFoundError(str(profile_id))
            return profile, await uow.events.last_event_at(profile_id)

    async def get_all(self, limit: int = 50, offset: int = 0) -> list[Profile]:
        """List profiles, most recently seen first. ``limit`` is capped."""
        limit = max(1, min(limit, self._max_page_size))
        offset = max(0, offset)
        async with self._uow_factory() as uow:
            profiles: list[Profile] = await uow.profiles.get_all(limit=limit, offset=offset)
            return profiles

    async def events(
        self, profile_id: UUID, limit: int | None = None, offset: int = 0
    ) -> list[Event]:
        """Events for a profile, newest first."""
        async with self._uow_factory() as uow:
            profile = await uow.profiles.get(profile_id)
            if not profile:
                raise ProfileNotFoundError(str(profile_id))
            return await uow.events.for_profile(  # type: ignore[no-any-return]
                profile_id, limit=limit, offset=offset
            )
