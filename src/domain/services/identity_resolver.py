"""Deterministic identity resolution.

Candidate identifiers are looked up in the fixed order user_id, email,
anonymous_id; the first hit wins. With no hit a new profile is created.
A matched profile only ever gains identifiers it did not have before, and
an identifier owned by a different profile is never used to re-route or to
merge: the collision is logged and that identifier is dropped.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

import structlog

from core.exceptions import MissingIdentifierError, UniquenessConflictError
from domain.entities.bag import Bag
from domain.entities.profile import (
    UNIQUE_KINDS,
    IdentifierKind,
    Identifiers,
    Profile,
    ProfilePatch,
)
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()

T = TypeVar("T")


class IdentityResolver:
    """Maps candidate identifiers to exactly one profile."""

    def __init__(self, conflict_retries: int = 3) -> None:
        self._conflict_retries = conflict_retries

    async def find(self, uow: IUnitOfWork, identifiers: Identifiers) -> Profile | None:
        """Look up by precedence and lock the matched row."""
        for kind, value in identifiers.present():
            profile = await uow.profiles.find_by_identifier(kind, value, for_update=True)
            if profile:
                return profile
        return None

    async def resolve(
        self,
        uow: IUnitOfWork,
        identifiers: Identifiers,
        traits: Bag | None = None,
        seen_at: datetime | None = None,
    ) -> Profile:
        """Attach to an existing profile or create one, inside the caller's UoW.

        The caller commits. A concurrent create on the same email/user_id
        surfaces as UniquenessConflictError; run the whole unit of work again
        via ``with_conflict_retry``.
        """
        if identifiers.is_empty:
            raise MissingIdentifierError()

        profile = await self.find(uow, identifiers)
        if profile is None:
            created = await uow.profiles.create(
                Profile.from_identifiers(identifiers, traits=traits, seen_at=seen_at)
            )
            logger.info(
                "profile_created",
                profile_id=str(created.id),
                primary_identifier=created.primary_identifier,
            )
            return created

        backfill = await self._backfillable(uow, profile, identifiers)
        for kind, _ in profile.unfilled(backfill):
            logger.info(
                "identifier_backfilled",
                profile_id=str(profile.id),
                kind=kind.value,
            )
        patch = ProfilePatch(identifiers=backfill, traits=traits or {}, seen_at=seen_at)
        return await uow.profiles.update(profile.id, patch)

    async def _backfillable(
        self, uow: IUnitOfWork, profile: Profile, identifiers: Identifiers
    ) -> Identifiers:
        """Drop supplied identifiers that another profile already owns."""
        colliding: set[IdentifierKind] = set()
        for kind, value in profile.unfilled(identifiers):
            if kind not in UNIQUE_KINDS:
                continue
            owner = await uow.profiles.find_by_identifier(kind, value)
            if owner and owner.id != profile.id:
                colliding.add(kind)
                logger.warning(
                    "identifier_collision",
                    profile_id=str(profile.id),
                    owner_profile_id=str(owner.id),
                    kind=kind.value,
                )
        return identifiers.without(colliding) if colliding else identifiers

    async def with_conflict_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation``, re-running it after a uniqueness conflict.

        Each run must open its own unit of work so the retry starts with a
        fresh lookup. The conflict is re-raised once retries are exhausted.
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except UniquenessConflictError:
                if attempt >= self._conflict_retries:
                    logger.warning("identity_conflict_exhausted", attempts=attempt + 1)
                    raise
                attempt += 1
                logger.info("identity_conflict_retry", attempt=attempt)
