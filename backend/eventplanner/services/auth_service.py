"""Authentication service.

Responsibilities:
- bcrypt password hashing and verification (passlib)
- signed, time-limited session tokens (itsdangerous) held in an HTTP-only cookie
- current-user resolution for route handlers
- registration and credential checks that never reveal whether an email exists
- login throttling per client address
"""
import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request, Response
from itsdangerous import BadData, URLSafeTimedSerializer
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eventplanner.config import settings
from eventplanner.database import get_db
from eventplanner.errors import AuthenticationError, RateLimitedError, ValidationError
from eventplanner.models.user import User
from eventplanner.services.rate_limiter import InMemoryRateLimiter, RateLimiter

logger = logging.getLogger(__name__)

_SESSION_SALT = "eventplanner.session"
INVALID_CREDENTIALS = "Invalid credentials"

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)
_dummy_hash: Optional[str] = None

login_rate_limiter: RateLimiter = InMemoryRateLimiter(
    max_attempts=settings.LOGIN_RATE_LIMIT_ATTEMPTS,
    window_seconds=settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
)


@dataclass(frozen=True)
class SessionData:
    user_id: str


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------
def hash_password(plaintext: str) -> str:
    return _pwd_context.hash(plaintext)


def verify_password(plaintext: str, hashed: str) -> bool:
    """Check ``plaintext`` against a stored hash; malformed hashes simply fail."""
    try:
        return _pwd_context.verify(plaintext, hashed)
    except (ValueError, TypeError):
        return False


def _verify_against_dummy(plaintext: str) -> None:
    """Spend the same bcrypt work as a real check when the email is unknown."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("not-a-real-password")
    verify_password(plaintext, _dummy_hash)


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------
def _serializer(secret: Optional[str] = None) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(
        secret or settings.SESSION_SECRET,
        salt=_SESSION_SALT,
        signer_kwargs={"digest_method": hashlib.sha256},
    )


def create_session(user_id: str, secret: Optional[str] = None) -> str:
    """Return a signed token asserting ``user_id``; the issue time is embedded by the signer."""
    return _serializer(secret).dumps({"sub": user_id})


def read_session(token: Optional[str], secret: Optional[str] = None) -> Optional[SessionData]:
    """Verify signature and age of ``token``. Missing, tampered or expired tokens yield None."""
    if not token:
        return None
    try:
        payload = _serializer(secret).loads(token, max_age=settings.session_max_age_seconds)
    except BadData:
        return None
    user_id = payload.get("sub") if isinstance(payload, dict) else None
    if not isinstance(user_id, str) or not user_id:
        return None
    return SessionData(user_id=user_id)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_max_age_seconds,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )


def destroy_session(response: Response) -> None:
    """Clear the session cookie; there is no server-side revocation list."""
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )


def get_session(request: Request) -> Optional[SessionData]:
    return read_session(request.cookies.get(settings.SESSION_COOKIE_NAME))


def get_current_user(request: Request, db: Session) -> Optional[User]:
    """Resolve the session cookie to a user row, or None if absent, invalid or deleted."""
    session = get_session(request)
    if session is None:
        return None
    return db.query(User).filter(User.user_id == session.user_id).first()


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------
def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    return get_current_user(request, db)


def require_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise AuthenticationError()
    return user


def get_login_rate_limiter() -> RateLimiter:
    return login_rate_limiter


def client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------
def _normalize_email(email: str) -> str:
    return email.strip().lower()


def register_user(db: Session, name: str, email: str, password: str) -> User:
    """Create a user; duplicate emails are rejected before insert and by the unique index."""
    email = _normalize_email(email)
    if db.query(User).filter(User.email == email).first():
        raise ValidationError("Email is already registered")

    user = User(name=name, email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Email is already registered")
    db.refresh(user)
    logger.info("Registered user %s", user.user_id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Return the user for valid credentials; unknown email and wrong password fail identically."""
    user = db.query(User).filter(User.email == _normalize_email(email)).first()
    if user is None:
        _verify_against_dummy(password)
        logger.warning("Rejected login: invalid credentials")
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not verify_password(password, user.password_hash):
        logger.warning("Rejected login: invalid credentials")
        raise AuthenticationError(INVALID_CREDENTIALS)
    return user


def check_login_rate(limiter: RateLimiter, address: str) -> None:
    if not limiter.hit(address):
        logger.warning("Login throttled for %s", address)
        raise RateLimitedError()
