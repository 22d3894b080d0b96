from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.hash import bcrypt

import config
import database
from logger import get_logger

log = get_logger("auth")

MIN_PASSWORD_LENGTH = 6

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.verify(password, password_hash)
    except ValueError:
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Return the subject (email) of a valid token, else None."""
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")


def get_user_by_email(email: str) -> Optional[dict]:
    users = database.get_documents("user", {"email": email.lower()}, limit=1)
    return users[0] if users else None


def is_admin(user: dict) -> bool:
    return (user.get("email") or "").lower() in config.ADMIN_EMAILS


def public_profile(user: dict) -> dict:
    """User document without sensitive fields."""
    profile = database.serialize(user)
    profile.pop("password_hash", None)
    profile["is_admin"] = is_admin(user)
    return profile


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Missing token")

    email = decode_access_token(credentials.credentials)
    if not email:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = get_user_by_email(email)
    if not user or not user.get("is_active", True):
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if not is_admin(user):
        log.warning("Admin access denied for %s", user.get("email"))
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
