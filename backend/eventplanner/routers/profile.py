"""Profile routes for the signed-in user."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from eventplanner.database import get_db
from eventplanner.models.user import User
from eventplanner.schemas.user import ProfileUpdate, UserOut
from eventplanner.services.auth_service import require_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=UserOut)
def get_profile(user: User = Depends(require_user)):
    return user


@router.put("", response_model=UserOut)
def update_profile(payload: ProfileUpdate, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Replace name, bio and avatar; omitted or empty optional fields are cleared."""
    user.name = payload.name
    user.bio = payload.bio
    user.avatar_url = str(payload.avatar_url) if payload.avatar_url else None
    db.commit()
    db.refresh(user)
    logger.info("Updated profile for user %s", user.user_id)
    return user
