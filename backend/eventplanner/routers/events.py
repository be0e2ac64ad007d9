"""Event API routes. Ownership checks and views live in event_service."""
import logging
from typing import Any, Optional
from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session

from eventplanner.database import get_db
from eventplanner.models.user import User
from eventplanner.schemas.calendar import CalendarLinkOut
from eventplanner.schemas.event import EventCreate, EventDetail, EventOut, EventWithRSVPs
from eventplanner.services import calendar_export, event_service
from eventplanner.services.auth_service import get_optional_user, require_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=list[EventWithRSVPs], response_model_exclude_unset=True)
def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    my_events: bool = Query(False, alias="myEvents"),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """List upcoming events with RSVP counts and, when signed in, the caller's answer."""
    return event_service.list_events(db, viewer=user, page=page, limit=limit, my_events=my_events)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return event_service.create_event(db, creator_id=user.user_id, payload=payload)


@router.get("/{event_id}", response_model=EventDetail, response_model_exclude_unset=True)
def get_event(event_id: str, user: Optional[User] = Depends(get_optional_user), db: Session = Depends(get_db)):
    """Fetch one event; ``userRSVP`` is omitted for anonymous callers."""
    event = event_service.get_event(db, event_id)
    return event_service.build_event_view(event, viewer=user, detail=True)


@router.put("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: dict[str, Any] = Body(..., description="Same fields as the create body"),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Replace an event's details (creator only).

    Existence and ownership are checked before the body is validated.
    """
    return event_service.update_event(db, event_id=event_id, actor_user_id=user.user_id, payload=payload)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Delete an event and its RSVPs (creator only)."""
    event_service.delete_event(db, event_id=event_id, actor_user_id=user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{event_id}/calendar.ics")
def download_ics(event_id: str, db: Session = Depends(get_db)):
    event = event_service.get_event(db, event_id)
    return Response(
        content=calendar_export.generate_ics(event),
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="event-{event_id}.ics"'},
    )


@router.get("/{event_id}/google-calendar-url", response_model=CalendarLinkOut)
def google_calendar_link(event_id: str, db: Session = Depends(get_db)):
    event = event_service.get_event(db, event_id)
    return CalendarLinkOut(url=calendar_export.google_calendar_url(event))
