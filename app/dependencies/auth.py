import hmac
import logging
from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core import config
from app.db.session import get_db
from app.models.user import User
from app.utils.auth import decode_session_token

logger = logging.getLogger(__name__)


def get_current_user(
    session_token: Optional[str] = Cookie(None, alias=config.SESSION_COOKIE_NAME),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the signed session cookie to an active user."""
    if not session_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    user_id = decode_session_token(session_token)
    if user_id is None:
        logger.info("[AUTH] Rejected invalid or expired session cookie")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    user = db.query(User).filter(User.id == user_id, User.is_active == True).first()  # noqa: E712
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


def get_current_user_id(user: User = Depends(get_current_user)) -> int:
    return user.id


def require_superadmin(user: User = Depends(get_current_user)) -> User:
    if not user.is_superadmin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return user


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """The scheduler authenticates with 'Authorization: Bearer <CRON_SECRET>'."""
    secret = config.CRON_SECRET
    if not secret:
        logger.error("[Cron] CRON_SECRET is not set; refusing to run scheduled jobs")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if not authorization or not hmac.compare_digest(authorization.encode(), f"Bearer {secret}".encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
