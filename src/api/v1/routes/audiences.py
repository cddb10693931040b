"""Audience API routes."""

import csv
import io
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response

from api.v1.dependencies import get_audience_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.audience import (
    AudienceCreate,
    AudienceDetailResponse,
    AudienceListResponse,
    AudienceMemberListResponse,
    AudienceResponse,
    RebuildResponse,
)
from api.v1.schemas.profile import ProfileSummaryResponse
from core.rate_limit import limiter
from domain.entities.profile import ProfileSummary
from domain.services.audience_service import AudienceService

router = APIRouter(prefix="/audiences", tags=["audiences"])

EXPORT_COLUMNS = ["email", "user_id", "total_spend", "total_orders", "last_seen_at"]


def render_members_csv(members: list[ProfileSummary]) -> str:
    """Render member summaries as CSV with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for member in members:
        writer.writerow(
            [
                member.email or "",
                member.user_id or "",
                str(member.total_spend),
                member.total_orders,
                member.last_seen_at.isoformat(),
            ]
        )
    return buffer.getvalue()


@router.post(
    "",
    response_model=AudienceDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an audience",
    responses={
        201: {"description": "Audience created"},
        400: {"model": ErrorResponse, "description": "Malformed definition"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def create_audience(
    request: Request,
    body: AudienceCreate,
    service: AudienceService = Depends(get_audience_service),
) -> AudienceDetailResponse:
    """Create an audience. Omitted rule fields are stored with their defaults."""
    audience = await service.create(name=body.name, definition=body.definition)
    return AudienceDetailResponse(data=AudienceResponse.from_entity(audience))


@router.get(
    "",
    response_model=AudienceListResponse,
    summary="List audiences",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_audiences(
    request: Request,
    service: AudienceService = Depends(get_audience_service),
) -> AudienceListResponse:
    """List audiences, newest first."""
    audiences = await service.get_all()
    return AudienceListResponse(data=[AudienceResponse.from_entity(a) for a in audiences])


@router.get(
    "/{audience_id}",
    response_model=AudienceDetailResponse,
    summary="Get an audience",
    responses={404: {"model": ErrorResponse, "description": "Audience not found"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_audience(
    request: Request,
    audience_id: UUID,
    service: AudienceService = Depends(get_audience_service),
) -> AudienceDetailResponse:
    """Get an audience definition and its last build time."""
    audience = await service.get(audience_id)
    return AudienceDetailResponse(data=AudienceResponse.from_entity(audience))


@router.post(
    "/{audience_id}/rebuild",
    response_model=RebuildResponse,
    summary="Rebuild audience membership",
    responses={404: {"model": ErrorResponse, "description": "Audience not found"}},
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def rebuild_audience(
    request: Request,
    audience_id: UUID,
    service: AudienceService = Depends(get_audience_service),
) -> RebuildResponse:
    """Recompute the full member set and replace the previous one atomically."""
    member_count = await service.rebuild(audience_id)
    return RebuildResponse(audience_id=audience_id, member_count=member_count)


@router.get(
    "/{audience_id}/members",
    response_model=AudienceMemberListResponse,
    summary="List audience members",
    responses={404: {"model": ErrorResponse, "description": "Audience not found"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_members(
    request: Request,
    audience_id: UUID,
    service: AudienceService = Depends(get_audience_service),
) -> AudienceMemberListResponse:
    """Members from the latest rebuild, most recently seen first."""
    members = await service.list_members(audience_id)
    return AudienceMemberListResponse(
        data=[ProfileSummaryResponse.from_summary(member) for member in members]
    )


@router.get(
    "/{audience_id}/export",
    summary="Export audience members as CSV",
    response_class=Response,
    responses={
        200: {"content": {"text/csv": {}}, "description": "CSV export"},
        404: {"model": ErrorResponse, "description": "Audience not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def export_members(
    request: Request,
    audience_id: UUID,
    service: AudienceService = Depends(get_audience_service),
) -> Response:
    """Members as CSV: email, user_id, total_spend, total_orders, last_seen_at."""
    members = await service.list_members(audience_id)
    return Response(
        content=render_members_csv(members),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="audience_{audience_id}.csv"'},
    )
