import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from gymbook.core.logging_config import get_logger

logger = get_logger("security.jwt")

SECRET_KEY_ACCESS_TOKEN = os.getenv("SECRET_KEY_ACCESS_TOKEN", "super-secret")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 5))  # default 5 minutes


def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    """Issue an access token; the booking core only needs this for tests and local tooling"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    logger.debug(f"Access token expires at: {expire}")
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY_ACCESS_TOKEN, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, SECRET_KEY_ACCESS_TOKEN, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Error verifying access token: {e}")
        return None


def extract_token(headers) -> Optional[str]:
    """Token from ``x-access-token`` or an ``Authorization: Bearer`` header"""
    token = headers.get("x-access-token")
    if token:
        return token
    authorization = headers.get("authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None
