"""Tests for the page-route session gate."""
import pytest

from eventplanner.middleware.session_gate import gate_decision
from tests.conftest import register_user


@pytest.mark.parametrize("path, authenticated, expected", [
    ("/profile", False, "/login"),
    ("/profile/settings", False, "/login"),
    ("/events/new", False, "/login"),
    ("/profile", True, None),
    ("/login", True, "/"),
    ("/register", True, "/"),
    ("/login", False, None),
    ("/register", False, None),
    ("/", False, None),
    ("/events/abc", False, None),
    ("/api/profile", False, None),
])
def test_gate_decision(path, authenticated, expected):
    assert gate_decision(path, authenticated) == expected


class TestSessionGateMiddleware:

    def test_anonymous_protected_page_redirects_to_login(self, client):
        resp = client.get("/profile", follow_redirects=False)
        assert resp.status_code == 307
        assert resp.headers["location"] == "/login"

    def test_authenticated_auth_page_redirects_home(self, client):
        register_user(client)
        resp = client.get("/login", follow_redirects=False)
        assert resp.status_code == 307
        assert resp.headers["location"] == "/"

    def test_authenticated_protected_page_passes_through(self, client):
        register_user(client)
        resp = client.get("/profile", follow_redirects=False)
        assert resp.status_code != 307

    def test_invalid_cookie_counts_as_anonymous(self, client):
        client.cookies.set("session", "garbage")
        resp = client.get("/events/new", follow_redirects=False)
        assert resp.status_code == 307
        assert resp.headers["location"] == "/login"

    def test_api_routes_are_not_gated(self, client):
        resp = client.get("/api/profile", follow_redirects=False)
        assert resp.status_code == 401
