"""
Folio - Security Utilities
===========================
JWT bearer tokens, bcrypt password hashing and session cookie settings.
"""

import logging
from datetime import timedelta
from typing import Optional

import bcrypt
from jose import jwt, JWTError

from config.settings import (
    SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, BCRYPT_ROUNDS,
    COOKIE_SECURE, COOKIE_SAMESITE, SESSION_COOKIE_MAX_AGE,
)
from common.helpers import now_utc

logger = logging.getLogger("folio.security")


# ==========================================
# Passwords
# ==========================================

def _password_bytes(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes and newer releases reject longer input
    return (password or "").encode("utf-8")[:72]


def hash_password(password: str) -> str:
    """bcrypt hash with a per-password random salt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


# ==========================================
# JWT Tokens
# ==========================================

def create_token(data: dict) -> str:
    """Create a bearer token. `sub` should be the user id as a string."""
    to_encode = data.copy()
    to_encode["exp"] = now_utc() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode a JWT token. Returns payload or None."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected bearer token: {e}")
        return None


# ==========================================
# Cookie Helpers
# ==========================================

def get_session_cookie_kwargs() -> dict:
    """Standard cookie settings for the guest session id."""
    return dict(
        httponly=True,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        max_age=SESSION_COOKIE_MAX_AGE,
    )
