"""Unit tests for Tracking service layer."""

from datetime import datetime
from decimal import Decimal
from typing import Any

import pytest

from core.exceptions import MissingIdentifierError, PayloadValidationError
from domain.entities.event import Event
from domain.entities.profile import Identifiers, Profile
from domain.services.tracking_service import TrackingService
from tests.unit.conftest import FakeUnitOfWork


@pytest.fixture
def service(uow: FakeUnitOfWork) -> TrackingService:
    """Create service with fake UoW and a repository that echoes writes."""
    uow.profiles.find_by_identifier.return_value = None
    uow.profiles.create.side_effect = lambda p: p
    uow.profiles.increment_aggregates.side_effect = lambda p, **kw: p
    uow.events.append.side_effect = lambda e: e
    return TrackingService(lambda: uow)


class TestTrack:
    @pytest.mark.asyncio
    async def test_purchase_creates_profile_and_updates_aggregates(
        self, service: TrackingService, uow: FakeUnitOfWork, now: datetime
    ) -> None:
        event, profile = await service.track(
            Identifiers(user_id="u2"),
            event_type="purchase",
            properties={"amount": 59.99},
            occurred_at=now,
        )

        assert profile is not None
        assert profile.total_orders == 1
        assert profile.total_spend == Decimal("59.99")
        assert profile.first_seen_at == now
        assert profile.last_seen_at == now
        assert event.profile_id == profile.id
        assert event.user_id == "u2"
        assert uow.committed

    @pytest.mark.asyncio
    async def test_event_attached_to_existing_profile(
        self, service: TrackingService, uow: FakeUnitOfWork, now: datetime
    ) -> None:
        existing = Profile.from_identifiers(Identifiers(anonymous_id="anon-1"), seen_at=now)

        async def update(id: Any, patch: Any) -> Profile:
            existing.apply_patch(patch)
            return existing

        uow.profiles.find_by_identifier.return_value = existing
        uow.profiles.update.side_effect = update

        event, profile = await service.track(
            Identifiers(anonymous_id="anon-1"), event_type="page_view", occurred_at=now
        )

        assert profile is existing
        assert event.profile_id == existing.id
        uow.profiles.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_event_type_is_trimmed(
        self, service: TrackingService, uow: FakeUnitOfWork
    ) -> None:
        event, _ = await service.track(Identifiers(user_id="u1"), event_type="  signup ")

        assert event.event_type == "signup"

    @pytest.mark.parametrize("event_type", [None, "", "   ", 7])
    @pytest.mark.asyncio
    async def test_requires_event_type(
        self, service: TrackingService, uow: FakeUnitOfWork, event_type: Any
    ) -> None:
        with pytest.raises(PayloadValidationError):
            await service.track(Identifiers(user_id="u1"), event_type=event_type)

        uow.events.append.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_identifier_by_default(
        self, service: TrackingService, uow: FakeUnitOfWork
    ) -> None:
        with pytest.raises(MissingIdentifierError):
            await service.track(Identifiers(), event_type="page_view")

        uow.events.append.assert_not_called()

    @pytest.mark.asyncio
    async def test_anonymous_event_when_allowed(
        self, service: TrackingService, uow: FakeUnitOfWork
    ) -> None:
        event, profile = await service.track(
            Identifiers(), event_type="page_view", allow_anonymous_event=True
        )

        assert profile is None
        assert event.profile_id is None
        uow.profiles.create.assert_not_called()
        uow.profiles.increment_aggregates.assert_not_called()
        assert uow.committed

    @pytest.mark.asyncio
    async def test_malformed_properties_rejected(
        self, service: TrackingService, uow: FakeUnitOfWork
    ) -> None:
        with pytest.raises(PayloadValidationError):
            await service.track(
                Identifiers(user_id="u1"), event_type="purchase", properties="amount=5"
            )

        assert uow.entered == 0

    @pytest.mark.asyncio
    async def test_failed_aggregate_write_rolls_back_event(
        self, service: TrackingService, uow: FakeUnitOfWork
    ) -> None:
        uow.profiles.increment_aggregates.side_effect = RuntimeError("disk full")

        with pytest.raises(RuntimeError):
            await service.track(
                Identifiers(user_id="u1"),
                event_type="purchase",
                properties={"amount": 10},
            )

        assert uow.rolled_back
        assert not uow.committed

    @pytest.mark.asyncio
    async def test_ingestion_time_recorded_separately(
        self, service: TrackingService, uow: FakeUnitOfWork
    ) -> None:
        occurred = datetime(2001, 1, 1)

        event, _ = await service.track(
            Identifiers(user_id="u1"), event_type="page_view", occurred_at=occurred
        )

        assert isinstance(event, Event)
        assert event.occurred_at == occurred
        assert event.created_at > occurred
