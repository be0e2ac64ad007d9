"""Registration, login and logout routes."""
import logging
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from eventplanner.database import get_db
from eventplanner.models.user import User
from eventplanner.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserOut
from eventplanner.services import auth_service
from eventplanner.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    """Create an account and sign the new user in."""
    user = auth_service.register_user(db, name=payload.name, email=payload.email, password=payload.password)
    auth_service.set_session_cookie(response, auth_service.create_session(user.user_id))
    return AuthResponse(message="Account created", user_id=user.user_id)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    limiter: RateLimiter = Depends(auth_service.get_login_rate_limiter),
):
    """Exchange email and password for a session cookie (throttled per client address)."""
    auth_service.check_login_rate(limiter, auth_service.client_address(request))
    user = auth_service.authenticate(db, email=payload.email, password=payload.password)
    auth_service.set_session_cookie(response, auth_service.create_session(user.user_id))
    logger.info("User %s logged in", user.user_id)
    return AuthResponse(message="Logged in", user_id=user.user_id)


@router.post("/logout")
def logout(response: Response):
    auth_service.destroy_session(response)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(auth_service.require_user)):
    return user
