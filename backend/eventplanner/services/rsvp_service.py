"""RSVP ledger: one status per (event, user), last write wins."""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from eventplanner.database import dialect_insert
from eventplanner.errors import NotFoundError
from eventplanner.models.event import Event
from eventplanner.models.rsvp import RSVP, RSVPStatus

logger = logging.getLogger(__name__)


def set_rsvp(db: Session, event_id: str, user_id: str, status: RSVPStatus) -> RSVP:
    """Create or overwrite the caller's RSVP in a single atomic statement.

    Repeating the current status leaves the row untouched, ``updated_at`` included.
    """
    if db.query(Event.event_id).filter(Event.event_id == event_id).first() is None:
        raise NotFoundError("Event not found")

    stmt = dialect_insert(db, RSVP).values(event_id=event_id, user_id=user_id, status=status)
    stmt = stmt.on_conflict_do_update(
        index_elements=[RSVP.event_id, RSVP.user_id],
        set_={"status": stmt.excluded.status, "updated_at": func.now()},
        where=RSVP.status != stmt.excluded.status,
    )
    db.execute(stmt)
    db.commit()

    rsvp = db.get(RSVP, (event_id, user_id))
    db.refresh(rsvp)
    logger.info("User %s RSVP'd '%s' to event %s", user_id, status.value, event_id)
    return rsvp
