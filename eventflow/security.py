from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from .config import JWT_SECRET_KEY, JWT_ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, RESET_TOKEN_EXPIRE_MINUTES
from .validation import is_password_too_long

ACCESS_TOKEN_TYPE = "access"
RESET_TOKEN_TYPE = "reset"


def hash_password(plain_password: str) -> str:
    """Hash a plain password using bcrypt."""
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    # bcrypt raises on input over 72 bytes
    if is_password_too_long(plain_password):
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))


def _create_token(subject: str, token_type: str, expires_delta: timedelta, extra: Optional[dict] = None) -> str:
    payload = dict(extra or {})
    payload.update({
        "sub": subject,
        "type": token_type,
        "exp": datetime.now(timezone.utc) + expires_delta,
    })
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def create_access_token(user_id: str, email: str) -> str:
    """
    Create the bearer token returned on log in.

    Args:
        user_id (str): The id of the authenticated user, stored as "sub".
        email (str): Added to the claims so clients can show it without a round trip.

    Returns:
        str: The encoded JWT.
    """
    return _create_token(user_id, ACCESS_TOKEN_TYPE, timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
                         {"email": email})


def create_reset_token(user_id: str, nonce: str) -> str:
    """
    Create the short-lived token embedded in the password recovery link.

    The nonce is also stored on the user and cleared once the password is reset,
    so each link works only once.
    """
    return _create_token(user_id, RESET_TOKEN_TYPE, timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES),
                         {"nonce": nonce})


def decode_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> Optional[dict]:
    """
    Decode and validate a JWT issued by this backend.

    Returns:
        dict | None: The claims, or None when the token is invalid, expired or of another type.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None

    if payload.get("type") != expected_type or not payload.get("sub"):
        return None
    return payload
