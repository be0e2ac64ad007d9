"""Tests for the Google Calendar client, driven through httpx.MockTransport."""
from datetime import datetime, timezone

import httpx
import pytest
import pytz

from eventplanner.services.calendar_client import (
    CalendarConfigError,
    CalendarFetchError,
    GoogleCalendarClient,
    UNTITLED,
    parse_google_event,
)

WINDOW_START = datetime(2030, 1, 1, tzinfo=timezone.utc)
WINDOW_END = datetime(2030, 7, 1, tzinfo=timezone.utc)


def _client(handler, timezone_name="UTC"):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return GoogleCalendarClient(
        client_id="client-id",
        client_secret="client-secret",
        refresh_token="refresh-token",
        timezone_name=timezone_name,
        http_client=http,
    )


def _token_response():
    return httpx.Response(200, json={"access_token": "access-123", "expires_in": 3600})


class TestParseGoogleEvent:

    def test_timed_event(self):
        ext = parse_google_event({
            "id": "g1",
            "summary": "Standup",
            "description": "Daily",
            "location": "Room 4",
            "start": {"dateTime": "2030-03-01T09:00:00+01:00"},
            "end": {"dateTime": "2030-03-01T09:15:00+01:00"},
        })
        assert ext.external_id == "g1"
        assert ext.title == "Standup"
        assert ext.start_at == datetime(2030, 3, 1, 8, 0, tzinfo=timezone.utc)
        assert ext.end_at == datetime(2030, 3, 1, 8, 15, tzinfo=timezone.utc)

    def test_missing_end_defaults_to_one_hour(self):
        ext = parse_google_event({"id": "g1", "start": {"dateTime": "2030-03-01T09:00:00Z"}})
        assert ext.end_at == datetime(2030, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_all_day_is_midnight_in_calendar_zone(self):
        zone = pytz.timezone("America/New_York")
        ext = parse_google_event(
            {"id": "g1", "start": {"date": "2030-03-01"}, "end": {"date": "2030-03-02"}},
            zone,
        )
        assert ext.start_at == datetime(2030, 3, 1, 5, 0, tzinfo=timezone.utc)
        assert ext.end_at == datetime(2030, 3, 2, 5, 0, tzinfo=timezone.utc)

    def test_naive_datetime_uses_event_time_zone(self):
        ext = parse_google_event({
            "id": "g1",
            "start": {"dateTime": "2030-07-01T12:00:00", "timeZone": "Europe/Berlin"},
        })
        assert ext.start_at == datetime(2030, 7, 1, 10, 0, tzinfo=timezone.utc)

    def test_untitled_default_and_blank_fields(self):
        ext = parse_google_event({
            "id": "g1", "summary": "  ", "description": "", "start": {"dateTime": "2030-03-01T09:00:00Z"},
        })
        assert ext.title == UNTITLED
        assert ext.description is None
        assert ext.location is None

    @pytest.mark.parametrize("item", [
        {"id": "g1", "status": "cancelled", "start": {"dateTime": "2030-03-01T09:00:00Z"}},
        {"start": {"dateTime": "2030-03-01T09:00:00Z"}},
        {"id": "g1"},
        {"id": "g1", "start": {"dateTime": "not-a-date"}},
    ])
    def test_unusable_entries_are_skipped(self, item):
        assert parse_google_event(item) is None


class TestGoogleCalendarClient:

    def test_missing_credentials(self):
        with pytest.raises(CalendarConfigError):
            GoogleCalendarClient(client_id="", client_secret="secret", refresh_token="token")

    def test_token_then_paginated_events(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if request.url.host == "oauth2.googleapis.com":
                assert b"grant_type=refresh_token" in request.content
                return _token_response()
            assert request.headers["Authorization"] == "Bearer access-123"
            assert request.url.params["singleEvents"] == "true"
            assert request.url.params["orderBy"] == "startTime"
            assert request.url.params["timeMin"] == "2030-01-01T00:00:00Z"
            if request.url.params.get("pageToken") == "page-2":
                return httpx.Response(200, json={"items": [
                    {"id": "b", "summary": "Second", "start": {"dateTime": "2030-02-01T10:00:00Z"}},
                ]})
            return httpx.Response(200, json={
                "items": [
                    {"id": "a", "summary": "First", "start": {"dateTime": "2030-01-10T10:00:00Z"}},
                    {"id": "x", "status": "cancelled", "start": {"dateTime": "2030-01-11T10:00:00Z"}},
                ],
                "nextPageToken": "page-2",
            })

        client = _client(handler)
        events = client.list_events("team@group.calendar.google.com", WINDOW_START, WINDOW_END)
        assert [e.external_id for e in events] == ["a", "b"]
        assert len(calls) == 3
        assert calls[1].url.path.endswith("/calendars/team@group.calendar.google.com/events")

    def test_access_token_is_reused(self):
        token_requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "oauth2.googleapis.com":
                token_requests.append(request)
                return _token_response()
            return httpx.Response(200, json={"items": []})

        client = _client(handler)
        client.list_events("cal", WINDOW_START, WINDOW_END)
        client.list_events("cal", WINDOW_START, WINDOW_END)
        assert len(token_requests) == 1

    def test_token_rejection(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "invalid_grant"})

        with pytest.raises(CalendarFetchError, match="invalid_grant"):
            _client(handler).list_events("cal", WINDOW_START, WINDOW_END)

    def test_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "oauth2.googleapis.com":
                return _token_response()
            return httpx.Response(404, json={"error": {"message": "Not Found"}})

        with pytest.raises(CalendarFetchError, match="404"):
            _client(handler).list_events("cal", WINDOW_START, WINDOW_END)

    def test_timeout_is_a_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(CalendarFetchError):
            _client(handler).list_events("cal", WINDOW_START, WINDOW_END)

    def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "oauth2.googleapis.com":
                return _token_response()
            return httpx.Response(200, content=b"<html>oops</html>")

        with pytest.raises(CalendarFetchError):
            _client(handler).list_events("cal", WINDOW_START, WINDOW_END)

    def test_close_leaves_injected_client_open(self):
        http = httpx.Client(transport=httpx.MockTransport(lambda request: _token_response()))
        client = GoogleCalendarClient("id", "secret", "token", http_client=http)
        client.close()
        assert not http.is_closed
        http.close()


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestFetchDeadline:

    def _slow_client(self, clock, timeouts, seconds_per_request=0.4, timeout=1.0):
        def handler(request: httpx.Request) -> httpx.Response:
            timeouts.append(request.extensions["timeout"]["read"])
            clock.now += seconds_per_request
            if request.url.host == "oauth2.googleapis.com":
                return _token_response()
            page = int(request.url.params.get("pageToken", "0"))
            return httpx.Response(200, json={
                "items": [{"id": f"e{page}", "start": {"dateTime": "2030-01-10T10:00:00Z"}}],
                "nextPageToken": str(page + 1),
            })

        http = httpx.Client(transport=httpx.MockTransport(handler))
        return GoogleCalendarClient(
            "client-id", "client-secret", "refresh-token",
            timeout=timeout, http_client=http, clock=clock,
        )

    def test_slow_pagination_hits_overall_deadline(self):
        clock = FakeClock()
        timeouts = []
        client = self._slow_client(clock, timeouts)
        with pytest.raises(CalendarFetchError, match="exceeded"):
            client.list_events("cal", WINDOW_START, WINDOW_END)
        # token + two pages fit in one second of fake time, the fourth request never starts
        assert len(timeouts) == 3
        assert clock.now - 100.0 == pytest.approx(1.2)

    def test_each_request_gets_the_remaining_budget(self):
        clock = FakeClock()
        timeouts = []
        client = self._slow_client(clock, timeouts)
        with pytest.raises(CalendarFetchError):
            client.list_events("cal", WINDOW_START, WINDOW_END)
        assert timeouts == pytest.approx([1.0, 0.6, 0.2])

    def test_deadline_restarts_per_call(self):
        clock = FakeClock()

        def handler(request: httpx.Request) -> httpx.Response:
            clock.now += 0.4
            if request.url.host == "oauth2.googleapis.com":
                return _token_response()
            return httpx.Response(200, json={"items": []})

        http = httpx.Client(transport=httpx.MockTransport(handler))
        client = GoogleCalendarClient("id", "secret", "token", timeout=1.0, http_client=http, clock=clock)
        assert client.list_events("cal", WINDOW_START, WINDOW_END) == []
        assert client.list_events("cal", WINDOW_START, WINDOW_END) == []
