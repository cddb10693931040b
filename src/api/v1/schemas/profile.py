"""Pydantic schemas for Profile and identify API."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.profile import Profile, ProfileSummary


class IdentifyRequest(BaseModel):
    """Schema for an identify call.

    ``traits`` is checked by the domain so a non-object payload is reported
    as VALIDATION_ERROR rather than a schema error.
    """

    email: str | None = Field(None, max_length=255)
    user_id: str | None = Field(None, max_length=255)
    anonymous_id: str | None = Field(None, max_length=255)
    traits: Any = None
    observed_at: datetime | None = None


class ProfileResponse(BaseModel):
    """Schema for Profile response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "primary_identifier": "u1",
                "email": "ada@example.com",
                "user_id": "u1",
                "anonymous_id": None,
                "traits": {"plan": "pro"},
                "total_orders": 1,
                "total_spend": "59.99",
                "first_seen_at": "2026-01-28T10:00:00",
                "last_seen_at": "2026-01-28T10:05:00",
            }
        },
    )

    id: UUID
    primary_identifier: str
    email: str | None = None
    user_id: str | None = None
    anonymous_id: str | None = None
    traits: dict[str, Any] = Field(default_factory=dict)
    total_orders: int
    total_spend: Decimal
    first_seen_at: datetime
    last_seen_at: datetime

    @classmethod
    def from_entity(cls, profile: Profile) -> "ProfileResponse":
        return cls.model_validate(profile)


class ProfileDetailResponse(BaseModel):
    """Schema for single Profile."""

    data: ProfileResponse
    last_event_at: datetime | None = None


class ProfileListResponse(BaseModel):
    """Schema for list of Profiles."""

    data: list[ProfileResponse]
    limit: int
    offset: int


class ProfileSummaryResponse(BaseModel):
    """Flat profile view used by audience member listings."""

    model_config = ConfigDict(from_attributes=True)

    profile_id: UUID
    email: str | None = None
    user_id: str | None = None
    total_spend: Decimal
    total_orders: int
    last_seen_at: datetime

    @classmethod
    def from_summary(cls, summary: ProfileSummary) -> "ProfileSummaryResponse":
        return cls.model_validate(summary)


class IdentifyResponse(BaseModel):
    """Schema for the profile an identify call resolved to."""

    data: ProfileResponse
