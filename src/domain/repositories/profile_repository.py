"""Profile repository protocol."""

from decimal import Decimal
from typing import Protocol
from uuid import UUID

from domain.entities.audience import MemberCandidate
from domain.entities.profile import IdentifierKind, Profile, ProfilePatch


class IProfileRepository(Protocol):
    """Repository interface for Profile entities.

    ``for_update`` takes a row lock held until the unit of work ends.
    """

    async def get(self, id: UUID, for_update: bool = False) -> Profile | None:
        """Get a profile by internal ID."""
        ...

    async def find_by_identifier(
        self, kind: IdentifierKind, value: str, for_update: bool = False
    ) -> Profile | None:
        """Find a profile by email, user_id or anonymous_id.

        anonymous_id is not unique; the earliest-created owner wins.
        """
        ...

    async def create(self, profile: Profile) -> Profile:
        """Insert a new profile.

        Raises UniquenessConflictError if email or user_id is already owned.
        """
        ...

    async def update(self, id: UUID, patch: ProfilePatch) -> Profile:
        """Backfill identifiers, merge traits and advance last_seen_at.

        Raises ProfileNotFoundError for an unknown ID.
        """
        ...

    async def increment_aggregates(
        self, profile: Profile, orders: int, spend: Decimal
    ) -> Profile:
        """Add ``orders`` and ``spend`` to the stored totals atomically.

        last_seen_at moves to ``profile.last_seen_at`` only if that is later.
        Returns the profile as stored after the update.
        """
        ...

    async def get_all(self, limit: int = 50, offset: int = 0) -> list[Profile]:
        """List profiles, most recently seen first."""
        ...

    async def list_candidates(self) -> list[MemberCandidate]:
        """Every profile with its total_spend and latest event time.

        Read in a single statement so the result is one consistent snapshot.
        """
        ...
