"""Audience repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.audience import Audience, AudienceMember
from domain.entities.profile import Profile


class IAudienceRepository(Protocol):
    """Repository interface for audiences and their membership."""

    async def get(self, id: UUID, for_update: bool = False) -> Audience | None:
        """Get an audience by ID."""
        ...

    async def create(self, audience: Audience) -> Audience:
        """Create a new audience."""
        ...

    async def get_all(self) -> list[Audience]:
        """List audiences, newest first."""
        ...

    async def replace_members(
        self, audience_id: UUID, members: list[AudienceMember], built_at: datetime
    ) -> int:
        """Swap the whole membership set and stamp last_built_at.

        Returns the new member count.
        """
        ...

    async def get_member_profiles(self, audience_id: UUID) -> list[Profile]:
        """Member profiles, most recently seen first."""
        ...
