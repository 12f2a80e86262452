from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt  # PyJWT

from app.core.config import SESSION_ALGORITHM, SESSION_MAX_AGE_SECONDS, SESSION_SECRET


def create_session_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Signed value for the session cookie; `sub` carries the user id."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(seconds=SESSION_MAX_AGE_SECONDS))
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, SESSION_SECRET, algorithm=SESSION_ALGORITHM)


def decode_session_token(token: str) -> Optional[int]:
    """Return the user id from a session token, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, SESSION_SECRET, algorithms=[SESSION_ALGORITHM])
    except jwt.PyJWTError:
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
