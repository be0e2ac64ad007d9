"""One-way import of an external calendar into local events.

Events are matched by ``google_calendar_id``. Matches are overwritten with
the external data, unknown ids are created under the fallback owner. Local
events are never deleted, and the owner of an already imported event is
never changed. The whole window is fetched before the first write, so a
fetch failure leaves the database untouched.
"""
import calendar
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventplanner.models.event import Event
from eventplanner.services.calendar_client import CalendarError, CalendarSource, ExternalEvent
from eventplanner.database import dialect_insert
from eventplanner.timeutil import utcnow

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MONTHS = 6


@dataclass
class SyncResult:
    success: bool
    created: int = 0
    updated: int = 0
    total: int = 0
    failed: int = 0
    error: Optional[str] = None


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _existing_ids(db: Session, external_ids: list[str]) -> set[str]:
    if not external_ids:
        return set()
    rows = db.query(Event.google_calendar_id).filter(Event.google_calendar_id.in_(external_ids)).all()
    return {row[0] for row in rows}


def _upsert(db: Session, ext: ExternalEvent, owner_id: str, now: datetime) -> None:
    stmt = dialect_insert(db, Event).values(
        event_id=str(uuid.uuid4()),
        title=ext.title,
        description=ext.description,
        location=ext.location,
        start_at=ext.start_at,
        end_at=ext.end_at,
        created_by_id=owner_id,
        google_calendar_id=ext.external_id,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Event.google_calendar_id],
        set_={
            "title": stmt.excluded.title,
            "description": stmt.excluded.description,
            "location": stmt.excluded.location,
            "start_at": stmt.excluded.start_at,
            "end_at": stmt.excluded.end_at,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    db.execute(stmt)


def sync_external_events(
    db: Session,
    source: CalendarSource,
    calendar_id: str,
    fallback_owner_id: str,
    window_months: int = DEFAULT_WINDOW_MONTHS,
    now: Optional[datetime] = None,
) -> SyncResult:
    """Reconcile the external calendar into local events and report what changed."""
    now = now or utcnow()
    time_max = add_months(now, window_months)

    try:
        external_events = source.list_events(calendar_id, now, time_max)
    except CalendarError as exc:
        logger.error("Calendar sync aborted, fetch failed for %s: %s", calendar_id, exc)
        return SyncResult(success=False, error=str(exc))

    known = _existing_ids(db, [ext.external_id for ext in external_events])
    result = SyncResult(success=True, total=len(external_events))

    for ext in external_events:
        try:
            _upsert(db, ext, fallback_owner_id, now)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            result.failed += 1
            logger.exception("Failed to import calendar entry %s", ext.external_id)
            continue
        if ext.external_id in known:
            result.updated += 1
        else:
            result.created += 1
            known.add(ext.external_id)

    logger.info(
        "Calendar sync for %s: %d created, %d updated, %d failed, %d total",
        calendar_id, result.created, result.updated, result.failed, result.total,
    )
    return result
