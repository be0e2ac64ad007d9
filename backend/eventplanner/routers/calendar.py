"""Calendar import route."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from eventplanner.config import settings
from eventplanner.database import get_db
from eventplanner.errors import ExternalServiceError
from eventplanner.models.user import User
from eventplanner.schemas.calendar import SyncResultOut
from eventplanner.services.auth_service import require_user
from eventplanner.services.calendar_client import CalendarConfigError, GoogleCalendarClient
from eventplanner.services.calendar_sync import sync_external_events

logger = logging.getLogger(__name__)
router = APIRouter()


def get_calendar_id() -> str:
    if not settings.GOOGLE_CALENDAR_ID:
        raise ExternalServiceError("Google Calendar ID not configured")
    return settings.GOOGLE_CALENDAR_ID


def get_calendar_source():
    """Yield a configured Google client, closing its HTTP pool after the request."""
    try:
        source = GoogleCalendarClient.from_settings(settings)
    except CalendarConfigError as exc:
        raise ExternalServiceError(str(exc))
    try:
        yield source
    finally:
        source.close()


@router.post("/sync", response_model=SyncResultOut)
def sync_calendar(
    user: User = Depends(require_user),
    calendar_id: str = Depends(get_calendar_id),
    source=Depends(get_calendar_source),
    db: Session = Depends(get_db),
):
    """Import upcoming events from the configured calendar; new ones are owned by the caller."""
    result = sync_external_events(
        db,
        source,
        calendar_id=calendar_id,
        fallback_owner_id=user.user_id,
        window_months=settings.CALENDAR_SYNC_WINDOW_MONTHS,
    )
    return SyncResultOut.model_validate(result)
