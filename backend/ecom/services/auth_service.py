from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from ecom.config import settings

pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthError(Exception):
    pass


def hash_password(p: str) -> str:
    return pwd_ctx.hash(p)


def verify_password(p: str, h: str) -> bool:
    return pwd_ctx.verify(p, h)


def create_access_token(
    user_id: int,
    secret: Optional[str] = None,
    expires_in: Optional[int] = None,
) -> str:
    """Sign an HS256 token carrying ``userID`` (as a string) and ``exp``."""
    secret = settings.JWT_SECRET if secret is None else secret
    if not secret:
        raise AuthError("JWT secret is empty")
    seconds = settings.JWT_EXPIRATION_SECONDS if expires_in is None else expires_in
    payload = {
        "userID": str(user_id),
        "exp": datetime.now(timezone.utc) + timedelta(seconds=seconds),
    }
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def decode_user_id(token: str, secret: Optional[str] = None) -> int:
    """Return the user id in ``token``; AuthError when it can't be trusted."""
    secret = settings.JWT_SECRET if secret is None else secret
    try:
        claims = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        raise AuthError("Invalid token") from e
    user_id = claims.get("userID")
    if not isinstance(user_id, str):
        raise AuthError("Invalid token claims")
    try:
        return int(user_id)
    except ValueError as e:
        raise AuthError("Invalid token claims") from e
