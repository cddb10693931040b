"""Pydantic schemas for Event and track API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from api.v1.schemas.profile import ProfileResponse
from domain.entities.event import Event


class TrackRequest(BaseModel):
    """Schema for a track call."""

    event_type: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)
    user_id: str | None = Field(None, max_length=255)
    anonymous_id: str | None = Field(None, max_length=255)
    properties: Any = None
    occurred_at: datetime | None = None
    allow_anonymous_event: bool = False


class EventResponse(BaseModel):
    """Schema for Event response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "456e4567-e89b-12d3-a456-426614174000",
                "profile_id": "123e4567-e89b-12d3-a456-426614174000",
                "event_type": "purchase",
                "properties": {"amount": 59.99},
                "occurred_at": "2026-01-28T10:05:00",
                "created_at": "2026-01-28T10:05:01",
            }
        },
    )

    id: UUID
    profile_id: UUID | None = None
    user_id: str | None = None
    anonymous_id: str | None = None
    event_type: str
    properties: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime
    created_at: datetime

    @classmethod
    def from_entity(cls, event: Event) -> "EventResponse":
        return cls.model_validate(event)


class TrackResponse(BaseModel):
    """Schema for a tracked event and the profile it was credited to."""

    event: EventResponse
    profile: ProfileResponse | None = None


class EventListResponse(BaseModel):
    """Schema for list of Events."""

    data: list[EventResponse]
