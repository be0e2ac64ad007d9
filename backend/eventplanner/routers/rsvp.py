"""RSVP API route."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from eventplanner.database import get_db
from eventplanner.models.user import User
from eventplanner.schemas.event import RSVPCreate, RSVPOut
from eventplanner.services import rsvp_service
from eventplanner.services.auth_service import require_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=RSVPOut, status_code=status.HTTP_200_OK)
def set_rsvp(payload: RSVPCreate, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Set or update the caller's RSVP status for an event."""
    return rsvp_service.set_rsvp(db, event_id=payload.event_id, user_id=user.user_id, status=payload.status)
