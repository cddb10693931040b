"""Identify and Profile API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from api.v1.dependencies import get_profile_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.event import EventListResponse, EventResponse
from api.v1.schemas.profile import (
    IdentifyRequest,
    IdentifyResponse,
    ProfileDetailResponse,
    ProfileListResponse,
    ProfileResponse,
)
from core.rate_limit import limiter
from domain.entities.profile import Identifiers
from domain.services.profile_service import ProfileService

identify_router = APIRouter(tags=["identity"])
router = APIRouter(prefix="/profiles", tags=["profiles"])


@identify_router.post(
    "/identify",
    response_model=IdentifyResponse,
    summary="Identify a customer",
    responses={
        200: {"description": "Profile resolved or created"},
        400: {
            "model": ErrorResponse,
            "description": "No identifier supplied or malformed traits",
        },
    },
)
@limiter.limit("60/minute")  # type: ignore[untyped-decorator]
async def identify(
    request: Request,
    body: IdentifyRequest,
    service: ProfileService = Depends(get_profile_service),
) -> IdentifyResponse:
    """Resolve the identifiers to one profile (creating it if needed) and merge traits."""
    identifiers = Identifiers.from_values(
        email=body.email,
        user_id=body.user_id,
        anonymous_id=body.anonymous_id,
    )
    profile = await service.identify(
        identifiers,
        traits=body.traits,
        observed_at=body.observed_at,
    )
    return IdentifyResponse(data=ProfileResponse.from_entity(profile))


@router.get(
    "",
    response_model=ProfileListResponse,
    summary="List profiles",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_profiles(
    request: Request,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileListResponse:
    """List profiles, most recently seen first. ``limit`` is capped server-side."""
    profiles = await service.get_all(limit=limit, offset=offset)
    return ProfileListResponse(
        data=[ProfileResponse.from_entity(profile) for profile in profiles],
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{profile_id}",
    response_model=ProfileDetailResponse,
    summary="Get a profile",
    responses={404: {"model": ErrorResponse, "description": "Profile not found"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_profile(
    request: Request,
    profile_id: UUID,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileDetailResponse:
    """Get a profile with its traits, aggregates and latest event time."""
    profile, last_event_at = await service.get_with_last_event(profile_id)
    return ProfileDetailResponse(
        data=ProfileResponse.from_entity(profile),
        last_event_at=last_event_at,
    )


@router.get(
    "/{profile_id}/events",
    response_model=EventListResponse,
    summary="List events for a profile",
    responses={404: {"model": ErrorResponse, "description": "Profile not found"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_profile_events(
    request: Request,
    profile_id: UUID,
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    service: ProfileService = Depends(get_profile_service),
) -> EventListResponse:
    """Events for a profile, newest first."""
    events = await service.events(profile_id, limit=limit, offset=offset)
    return EventListResponse(data=[EventResponse.from_entity(event) for event in events])
