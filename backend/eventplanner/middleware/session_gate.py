"""Request-boundary gate for page routes.

Only the cookie signature is checked here; no user lookup happens and no
state is touched. Route handlers still resolve identity themselves.
"""
import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from eventplanner.config import settings
from eventplanner.services.auth_service import read_session

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = ("/profile", "/events/new")
AUTH_ONLY_PATHS = ("/login", "/register")
UNGATED_PREFIXES = ("/api", "/docs", "/redoc", "/openapi.json", "/static", "/favicon.ico")

HOME_PATH = "/"
LOGIN_PATH = "/login"


def gate_decision(path: str, authenticated: bool) -> Optional[str]:
    """Return the redirect target for ``path``, or None to let the request through."""
    if path.startswith(UNGATED_PREFIXES):
        return None
    if authenticated and path in AUTH_ONLY_PATHS:
        return HOME_PATH
    if not authenticated and path.startswith(PROTECTED_PREFIXES):
        return LOGIN_PATH
    return None


class SessionGateMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        token = request.cookies.get(settings.SESSION_COOKIE_NAME)
        authenticated = read_session(token) is not None
        target = gate_decision(request.url.path, authenticated)
        if target is not None:
            logger.debug("Gate redirect %s -> %s", request.url.path, target)
            return RedirectResponse(url=target)
        return await call_next(request)
