"""
Access token helpers.

Login and password handling live with the identity provider; this service
only issues and verifies the signed JWTs that carry a user's email as ``sub``.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from jose import jwt

from engagement.core.config import settings


def create_access_token(subject: Union[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Raises ``jose.JWTError`` for bad signatures or expired tokens."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
