"""Read-only Google Calendar client.

Uses an OAuth refresh token to obtain an access token, then lists events
with recurring entries expanded into single instances. Every failure to
reach or authenticate against Google surfaces as ``CalendarFetchError``.
A single deadline of ``timeout`` seconds covers the token request and every
page of one ``list_events`` call.
"""
import abc
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from time import monotonic
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx
import pytz

logger = logging.getLogger(__name__)

GOOGLE_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
PAGE_SIZE = 250
MAX_PAGES = 40
DEFAULT_EVENT_DURATION = timedelta(hours=1)
UNTITLED = "Untitled event"


class CalendarError(Exception):
    """Base class for calendar source failures."""


class CalendarConfigError(CalendarError):
    """Credentials or calendar id are missing."""


class CalendarFetchError(CalendarError):
    """The calendar source could not be reached, authenticated against, or parsed."""


@dataclass(frozen=True)
class ExternalEvent:
    external_id: str
    title: str
    description: Optional[str]
    location: Optional[str]
    start_at: datetime
    end_at: datetime


class CalendarSource(abc.ABC):
    """Anything that can list external events for a calendar and time window."""

    @abc.abstractmethod
    def list_events(self, calendar_id: str, time_min: datetime, time_max: datetime) -> list[ExternalEvent]:
        ...

    def close(self) -> None:
        return None


def _rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_point(raw: Any, tz: pytz.BaseTzInfo) -> Optional[datetime]:
    """Parse a Google ``start``/``end`` object into an aware UTC datetime.

    Date-only values (all-day entries) become midnight of that date in ``tz``.
    """
    if not isinstance(raw, dict):
        return None
    if raw.get("dateTime"):
        parsed = datetime.fromisoformat(str(raw["dateTime"]).replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            zone = pytz.timezone(raw["timeZone"]) if raw.get("timeZone") else tz
            parsed = zone.localize(parsed)
        return parsed.astimezone(timezone.utc)
    if raw.get("date"):
        day = date.fromisoformat(str(raw["date"]))
        return tz.localize(datetime.combine(day, time.min)).astimezone(timezone.utc)
    return None


def parse_google_event(item: dict[str, Any], tz: pytz.BaseTzInfo = pytz.utc) -> Optional[ExternalEvent]:
    """Map one Google event resource; returns None for cancelled or unusable entries."""
    external_id = item.get("id")
    if not external_id or item.get("status") == "cancelled":
        return None
    try:
        start_at = _parse_point(item.get("start"), tz)
        end_at = _parse_point(item.get("end"), tz)
    except (ValueError, pytz.UnknownTimeZoneError) as exc:
        logger.warning("Skipping calendar entry %s with unreadable times: %s", external_id, exc)
        return None
    if start_at is None:
        return None
    if end_at is None:
        end_at = start_at + DEFAULT_EVENT_DURATION
    return ExternalEvent(
        external_id=str(external_id),
        title=(item.get("summary") or "").strip() or UNTITLED,
        description=item.get("description") or None,
        location=item.get("location") or None,
        start_at=start_at,
        end_at=end_at,
    )


def _safe_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return " ".join(error["message"].split())[:200]
        if isinstance(error, str) and error.strip():
            return " ".join(error.split())[:200]
    text = response.text.strip()
    return " ".join(text.split())[:200] if text else "Request failed without an error payload"


class GoogleCalendarClient(CalendarSource):
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        timeout: float = 30.0,
        timezone_name: str = "UTC",
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = monotonic,
    ):
        if not (client_id and client_secret and refresh_token):
            raise CalendarConfigError("Google Calendar credentials not configured")
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._tz = pytz.timezone(timezone_name)
        self._timeout = timeout
        self._clock = clock
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)
        self._access_token: Optional[str] = None

    @classmethod
    def from_settings(cls, settings) -> "GoogleCalendarClient":
        return cls(
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            refresh_token=settings.GOOGLE_REFRESH_TOKEN,
            timeout=settings.CALENDAR_SYNC_TIMEOUT_SECONDS,
            timezone_name=settings.CALENDAR_TIMEZONE,
        )

    def close(self) -> None:
        if self._owns_http_client:
            self._http.close()

    def _remaining(self, deadline: float) -> float:
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise CalendarFetchError(f"Google Calendar fetch exceeded {self._timeout:g}s")
        return remaining

    def _request(self, method: str, url: str, deadline: float, **kwargs) -> dict[str, Any]:
        try:
            response = self._http.request(method, url, timeout=self._remaining(deadline), **kwargs)
        except httpx.HTTPError as exc:
            raise CalendarFetchError(f"Google request failed: {exc.__class__.__name__}") from exc
        if response.status_code < 200 or response.status_code >= 300:
            raise CalendarFetchError(
                f"Google request failed ({response.status_code}): {_safe_error_message(response)}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise CalendarFetchError("Google returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise CalendarFetchError("Google returned an unexpected JSON payload shape")
        return payload

    def _get_access_token(self, deadline: float) -> str:
        if self._access_token:
            return self._access_token
        payload = self._request(
            "POST",
            GOOGLE_OAUTH_TOKEN_URL,
            deadline,
            data={
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": self._refresh_token,
                "grant_type": "refresh_token",
            },
            headers={"Accept": "application/json"},
        )
        token = payload.get("access_token")
        if not isinstance(token, str) or not token.strip():
            raise CalendarFetchError("Google token response is missing an access_token")
        self._access_token = token.strip()
        return self._access_token

    def list_events(self, calendar_id: str, time_min: datetime, time_max: datetime) -> list[ExternalEvent]:
        """Return every event instance in the window, following pagination to the end."""
        deadline = self._clock() + self._timeout
        headers = {"Authorization": f"Bearer {self._get_access_token(deadline)}"}
        url = f"{GOOGLE_CALENDAR_API_BASE_URL}/calendars/{quote(calendar_id, safe='')}/events"
        params: dict[str, Any] = {
            "singleEvents": "true",
            "orderBy": "startTime",
            "showDeleted": "false",
            "maxResults": PAGE_SIZE,
            "timeMin": _rfc3339(time_min),
            "timeMax": _rfc3339(time_max),
        }

        events: list[ExternalEvent] = []
        for _ in range(MAX_PAGES):
            payload = self._request("GET", url, deadline, params=params, headers=headers)
            items = payload.get("items") or []
            if not isinstance(items, list):
                raise CalendarFetchError("Google returned a non-list 'items' field")
            for item in items:
                if isinstance(item, dict):
                    parsed = parse_google_event(item, self._tz)
                    if parsed is not None:
                        events.append(parsed)
            page_token = payload.get("nextPageToken")
            if not page_token:
                break
            params["pageToken"] = page_token
        else:
            raise CalendarFetchError(f"Google pagination exceeded {MAX_PAGES} pages")

        logger.info("Fetched %d events from calendar %s", len(events), calendar_id)
        return events
