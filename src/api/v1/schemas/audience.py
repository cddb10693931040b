"""Pydantic schemas for Audience API."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from api.v1.schemas.profile import ProfileSummaryResponse
from domain.entities.audience import Audience


class AudienceCreate(BaseModel):
    """Schema for creating an Audience.

    ``definition`` is validated by the domain parser.
    """

    name: str = Field(..., min_length=1, max_length=255)
    definition: Any = Field(default_factory=dict)


class AudienceDefinitionResponse(BaseModel):
    """Explicit audience rule."""

    min_total_spend: Decimal
    days_since_last_event: int


class AudienceResponse(BaseModel):
    """Schema for Audience response."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "789e4567-e89b-12d3-a456-426614174000",
                "name": "Recent big spenders",
                "definition": {"min_total_spend": "100.00", "days_since_last_event": 30},
                "created_at": "2026-01-28T10:00:00",
                "last_built_at": None,
            }
        },
    )

    id: UUID
    name: str
    definition: AudienceDefinitionResponse
    created_at: datetime
    last_built_at: datetime | None = None

    @classmethod
    def from_entity(cls, audience: Audience) -> "AudienceResponse":
        return cls(
            id=audience.id,
            name=audience.name,
            definition=AudienceDefinitionResponse(
                min_total_spend=audience.definition.min_total_spend,
                days_since_last_event=audience.definition.days_since_last_event,
            ),
            created_at=audience.created_at,
            last_built_at=audience.last_built_at,
        )


class AudienceDetailResponse(BaseModel):
    """Schema for single Audience."""

    data: AudienceResponse


class AudienceListResponse(BaseModel):
    """Schema for list of Audiences."""

    data: list[AudienceResponse]


class RebuildResponse(BaseModel):
    """Schema for a completed rebuild."""

    audience_id: UUID
    member_count: int


class AudienceMemberListResponse(BaseModel):
    """Schema for audience members."""

    data: list[ProfileSummaryResponse]
