"""Tracking service: event ingestion with aggregate maintenance."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog

from core.clock import as_naive_utc, utcnow
from core.exceptions import MissingIdentifierError, PayloadValidationError
from domain.entities.bag import validate_bag
from domain.entities.event import Event
from domain.entities.profile import Identifiers, Profile
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.aggregate_maintainer import AggregateMaintainer
from domain.services.identity_resolver import IdentityResolver

logger = structlog.get_logger()


class TrackingService:
    """Resolves identity, appends the event and updates aggregates as one unit."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        resolver: IdentityResolver | None = None,
        maintainer: AggregateMaintainer | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._resolver = resolver or IdentityResolver()
        self._maintainer = maintainer or AggregateMaintainer()

    async def track(
        self,
        identifiers: Identifiers,
        event_type: Any,
        properties: Any = None,
        occurred_at: datetime | None = None,
        allow_anonymous_event: bool = False,
    ) -> tuple[Event, Profile | None]:
        """Record an event and credit it to the resolved profile.

        With no identifiers the call fails with MissingIdentifierError unless
        ``allow_anonymous_event`` is set, in which case the event is logged
        without a profile. The event append and the aggregate update commit
        together or not at all.
        """
        if not isinstance(event_type, str) or not event_type.strip():
            raise PayloadValidationError("event_type is required", field="event_type")
        if identifiers.is_empty and not allow_anonymous_event:
            raise MissingIdentifierError()

        props = validate_bag(properties, "properties")
        occurred = as_naive_utc(occurred_at) if occurred_at else utcnow()

        async def attempt() -> tuple[Event, Profile | None]:
            async with self._uow_factory() as uow:
                profile: Profile | None = None
                if not identifiers.is_empty:
                    profile = await self._resolver.resolve(uow, identifiers, seen_at=occurred)

                event = await uow.events.append(
                    Event(
                        event_type=event_type.strip(),
                        profile_id=profile.id if profile else None,
                        user_id=identifiers.user_id,
                        anonymous_id=identifiers.anonymous_id,
                        properties=props,
                        occurred_at=occurred,
                        created_at=utcnow(),
                    )
                )

                if profile is not None:
                    profile = await self._maintainer.record(uow, profile, event)

                await uow.commit()
                return event, profile

        event, profile = await self._resolver.with_conflict_retry(attempt)
        logger.info(
            "event_tracked",
            event_id=str(event.id),
            event_type=event.event_type,
            profile_id=str(profile.id) if profile else None,
        )
        return event, profile
