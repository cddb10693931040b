"""Event log repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.event import Event


class IEventRepository(Protocol):
    """Append-only event log. There is no update or delete."""

    async def append(self, event: Event) -> Event:
        """Append an event."""
        ...

    async def last_event_at(self, profile_id: UUID) -> datetime | None:
        """Latest occurred_at for a profile, or None if it has no events."""
        ...

    async def for_profile(
        self, profile_id: UUID, limit: int | None = None, offset: int = 0
    ) -> list[Event]:
        """Events for a profile, newest first."""
        ...
