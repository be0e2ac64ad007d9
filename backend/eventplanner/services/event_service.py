"""Core event service.

Responsibilities:
- Authorization hook: only the creator may update or delete an event
- Listing of upcoming events with RSVP counts and the caller's own answer
- Detail views that omit the caller's RSVP for anonymous requests
"""
import logging
from collections import Counter
from typing import Any, Mapping, Optional, Union

from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session, selectinload

from eventplanner.errors import AuthorizationError, NotFoundError
from eventplanner.models.event import Event
from eventplanner.models.rsvp import RSVP, RSVPStatus
from eventplanner.models.user import User
from eventplanner.schemas.event import (
    EventCreate,
    EventDetail,
    EventOut,
    EventWithRSVPs,
    RSVPOut,
    RSVPWithUser,
)
from eventplanner.schemas.user import UserSummary
from eventplanner.timeutil import utcnow

logger = logging.getLogger(__name__)


def _check_authorization(event: Event, actor_user_id: str) -> None:
    """Only the creator may modify an event."""
    if event.created_by_id != actor_user_id:
        raise AuthorizationError("Only the creator may edit this event")


def get_event(db: Session, event_id: str) -> Event:
    event = (
        db.query(Event)
        .options(selectinload(Event.rsvps).selectinload(RSVP.user), selectinload(Event.created_by))
        .filter(Event.event_id == event_id)
        .first()
    )
    if not event:
        raise NotFoundError("Event not found")
    return event


def create_event(db: Session, creator_id: str, payload: EventCreate) -> Event:
    event = Event(
        title=payload.title,
        description=payload.description,
        location=payload.location,
        start_at=payload.start_at,
        end_at=payload.end_at,
        created_by_id=creator_id,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) by user %s", event.title, event.event_id, creator_id)
    return event


def _parse_event_payload(raw: Mapping[str, Any]) -> EventCreate:
    try:
        return EventCreate.model_validate(raw)
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False), body=raw)


def update_event(
    db: Session,
    event_id: str,
    actor_user_id: str,
    payload: Union[EventCreate, Mapping[str, Any]],
) -> Event:
    """Replace an event's editable fields. The creator reference never changes.

    A raw body is validated only after the existence and ownership checks, so
    the caller sees 404 or 403 before any 400.
    """
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFoundError("Event not found")

    _check_authorization(event, actor_user_id)
    if not isinstance(payload, EventCreate):
        payload = _parse_event_payload(payload)

    event.title = payload.title
    event.description = payload.description
    event.location = payload.location
    event.start_at = payload.start_at
    event.end_at = payload.end_at
    event.updated_at = utcnow()
    db.commit()
    db.refresh(event)
    logger.info("Updated event %s", event_id)
    return event


def delete_event(db: Session, event_id: str, actor_user_id: str) -> None:
    """Delete an event; its RSVPs go with it."""
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFoundError("Event not found")

    _check_authorization(event, actor_user_id)

    db.delete(event)
    db.commit()
    logger.info("Deleted event %s", event_id)


def _rsvp_counts(rsvps: list[RSVP]) -> dict[str, int]:
    counts = Counter(r.status.value for r in rsvps)
    return {status.value: counts.get(status.value, 0) for status in RSVPStatus}


def build_event_view(event: Event, viewer: Optional[User], detail: bool = False) -> EventWithRSVPs:
    """Assemble the response model; ``user_rsvp`` is only set when there is a viewer."""
    fields = EventOut.model_validate(event).model_dump()
    fields.update(
        rsvp_count=len(event.rsvps),
        rsvp_counts=_rsvp_counts(event.rsvps),
        rsvps=[RSVPWithUser.model_validate(r) for r in event.rsvps],
    )
    if viewer is not None:
        own = next((r for r in event.rsvps if r.user_id == viewer.user_id), None)
        fields["user_rsvp"] = RSVPOut.model_validate(own) if own else None
    if detail:
        return EventDetail(created_by=UserSummary.model_validate(event.created_by), **fields)
    return EventWithRSVPs(**fields)


def list_events(
    db: Session,
    viewer: Optional[User],
    page: int = 1,
    limit: int = 20,
    my_events: bool = False,
) -> list[EventWithRSVPs]:
    """Upcoming events ordered by start; ``my_events`` keeps those the viewer said yes to."""
    query = (
        db.query(Event)
        .options(selectinload(Event.rsvps).selectinload(RSVP.user))
        .filter(Event.start_at >= utcnow())
    )
    if my_events and viewer is not None:
        query = query.filter(
            Event.rsvps.any((RSVP.user_id == viewer.user_id) & (RSVP.status == RSVPStatus.yes))
        )
    events = query.order_by(Event.start_at).offset((page - 1) * limit).limit(limit).all()
    return [build_event_view(event, viewer) for event in events]
