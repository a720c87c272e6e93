from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import jwt

from flowspace.core.config import settings

BCRYPT_ROUNDS = 12


def create_access_token(subject: str | Any, expires_delta: timedelta | None = None) -> str:
    """Issue a signed bearer token.

    Only the user id travels in the token. Role, status and division are
    looked up again on every request.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False
