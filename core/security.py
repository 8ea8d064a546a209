from datetime import datetime, timedelta

from jose import jwt

from core.config import settings


def create_access_token(user_id: int, expire_minutes: int = None):
    minutes = expire_minutes if expire_minutes is not None else settings.JWT_EXPIRE_MINUTES
    expire = datetime.utcnow() + timedelta(minutes=minutes)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str):
    """Returns the user id carried by the token. Raises jose.JWTError on a bad token."""
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    user_id = payload.get("sub")
    if user_id is None:
        return None
    return int(user_id)
