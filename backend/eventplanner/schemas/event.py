"""Pydantic schemas for Events and RSVPs."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator, model_validator

from eventplanner.models.rsvp import RSVPStatus
from eventplanner.schemas.base import CamelModel, blank_to_none
from eventplanner.schemas.user import UserSummary
from eventplanner.timeutil import ensure_utc


class EventCreate(CamelModel):
    """Body of POST /events and PUT /events/{id}."""

    title: str = Field(min_length=3, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=500)
    start_at: datetime
    end_at: Optional[datetime] = None

    @field_validator("description", "location", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            return blank_to_none(value)
        return value

    @field_validator("start_at", "end_at")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_range(self) -> "EventCreate":
        if self.end_at is not None and self.end_at <= self.start_at:
            raise ValueError("endAt must be after startAt")
        return self


class EventOut(CamelModel):
    event_id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    start_at: datetime
    end_at: Optional[datetime] = None
    created_by_id: str
    google_calendar_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("start_at", "end_at", "created_at", "updated_at")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class RSVPCreate(CamelModel):
    event_id: str = Field(min_length=1)
    status: RSVPStatus


class RSVPOut(CamelModel):
    event_id: str
    user_id: str
    status: RSVPStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class RSVPWithUser(RSVPOut):
    user: UserSummary


class EventWithRSVPs(EventOut):
    """Listing entry: counts, attendees and, for signed-in callers, their own answer.

    ``user_rsvp`` is left unset for anonymous callers so it is omitted from the
    response; for signed-in callers it is explicitly set (``None`` when they
    have not answered).
    """

    rsvp_count: int = 0
    rsvp_counts: dict[str, int] = Field(default_factory=dict)
    rsvps: list[RSVPWithUser] = Field(default_factory=list)
    user_rsvp: Optional[RSVPOut] = Field(default=None, alias="userRSVP")


class EventDetail(EventWithRSVPs):
    created_by: UserSummary
