"""Track API route."""

from fastapi import APIRouter, Depends, Request, status

from api.v1.dependencies import get_tracking_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.event import EventResponse, TrackRequest, TrackResponse
from api.v1.schemas.profile import ProfileResponse
from core.rate_limit import limiter
from domain.entities.profile import Identifiers
from domain.services.tracking_service import TrackingService

router = APIRouter(tags=["events"])


@router.post(
    "/track",
    response_model=TrackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Track an event",
    responses={
        201: {"description": "Event recorded"},
        400: {
            "model": ErrorResponse,
            "description": "Missing event_type or identifier, or malformed properties",
        },
    },
)
@limiter.limit("60/minute")  # type: ignore[untyped-decorator]
async def track(
    request: Request,
    body: TrackRequest,
    service: TrackingService = Depends(get_tracking_service),
) -> TrackResponse:
    """Record an event, attach it to the resolved profile and update its aggregates."""
    identifiers = Identifiers.from_values(
        email=body.email,
        user_id=body.user_id,
        anonymous_id=body.anonymous_id,
    )
    event, profile = await service.track(
        identifiers,
        event_type=body.event_type,
        properties=body.properties,
        occurred_at=body.occurred_at,
        allow_anonymous_event=body.allow_anonymous_event,
    )
    return TrackResponse(
        event=EventResponse.from_entity(event),
        profile=ProfileResponse.from_entity(profile) if profile else None,
    )
