"""Dependency injection factories for API v1."""

from functools import lru_cache
from typing import Callable

from core.config import settings
from domain.services.audience_service import AudienceService
from domain.services.identity_resolver import IdentityResolver
from domain.services.profile_service import ProfileService
from domain.services.tracking_service import TrackingService
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_identity_resolver() -> IdentityResolver:
    """Get Identity resolver instance."""
    return IdentityResolver(conflict_retries=settings.identity_conflict_retries)


@lru_cache
def get_profile_service() -> ProfileService:
    """Get Profile service instance."""
    return ProfileService(
        get_uow_factory(),
        resolver=get_identity_resolver(),
        max_page_size=settings.max_page_size,
    )


@lru_cache
def get_tracking_service() -> TrackingService:
    """Get Tracking service instance."""
    return TrackingService(get_uow_factory(), resolver=get_identity_resolver())


@lru_cache
def get_audience_service() -> AudienceService:
    """Get Audience service instance."""
    return AudienceService(
        get_uow_factory(),
        default_recency_days=settings.default_recency_window_days,
    )
