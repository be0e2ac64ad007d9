"""Calendar export helpers: iCalendar text and Google Calendar template links."""
from datetime import datetime
from typing import Optional
from urllib.parse import urlencode

from eventplanner.models.event import Event
from eventplanner.services.calendar_client import DEFAULT_EVENT_DURATION
from eventplanner.timeutil import ensure_utc, utcnow

GOOGLE_TEMPLATE_URL = "https://calendar.google.com/calendar/render"
PRODID = "-//eventplanner//Event//EN"


def _format_utc(value: datetime) -> str:
    """RFC 5545 UTC timestamp, e.g. 20261019T180000Z."""
    return ensure_utc(value).replace(microsecond=0).strftime("%Y%m%dT%H%M%SZ")


def _event_end(event: Event) -> datetime:
    return event.end_at or ensure_utc(event.start_at) + DEFAULT_EVENT_DURATION


def _escape_text(value: Optional[str]) -> str:
    if not value:
        return ""
    normalized = value.replace("\r\n", "\n").replace("\r", "\n")
    return (
        normalized.replace("\\", "\\\\")
        .replace(";", r"\;")
        .replace(",", r"\,")
        .replace("\n", r"\n")
    )


def generate_ics(event: Event, now: Optional[datetime] = None) -> str:
    """Return a single-event VCALENDAR document."""
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{event.event_id}@eventplanner",
        f"DTSTAMP:{_format_utc(now or utcnow())}",
        f"DTSTART:{_format_utc(event.start_at)}",
        f"DTEND:{_format_utc(_event_end(event))}",
        f"SUMMARY:{_escape_text(event.title)}",
    ]
    if event.description:
        lines.append(f"DESCRIPTION:{_escape_text(event.description)}")
    if event.location:
        lines.append(f"LOCATION:{_escape_text(event.location)}")
    lines += ["STATUS:CONFIRMED", "END:VEVENT", "END:VCALENDAR"]
    return "\r\n".join(lines) + "\r\n"


def google_calendar_url(event: Event) -> str:
    """Link that opens Google Calendar with the event pre-filled."""
    params = {
        "action": "TEMPLATE",
        "text": event.title,
        "dates": f"{_format_utc(event.start_at)}/{_format_utc(_event_end(event))}",
        "details": event.description or "",
        "location": event.location or "",
    }
    return f"{GOOGLE_TEMPLATE_URL}?{urlencode(params)}"
