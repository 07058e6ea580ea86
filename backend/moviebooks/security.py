"""Password hashing, JWT issuing, and the auth dependencies.

`get_current_user` guards private routes: 401 when the bearer token is
missing, invalid, or points at a deleted user.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from moviebooks.config import settings
from moviebooks.database import get_db
from moviebooks.models.tables import User

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260_000

bearer_scheme = HTTPBearer(auto_error=False)


# ── Passwords ────────────────────────────────────────────────────

def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Return `pbkdf2_sha256$<iterations>$<salt>$<hex digest>`."""
    if not salt:
        salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS
    )
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, iterations, salt, expected = stored.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


# ── Tokens ───────────────────────────────────────────────────────

def create_access_token(user_id: int) -> str:
    expires = datetime.now(timezone.utc) + timedelta(days=settings.jwt_expires_days)
    return jwt.encode(
        {"sub": str(user_id), "exp": expires},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> int:
    """Return the user id carried by `token`. Raises JWTError / ValueError."""
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    sub = payload.get("sub")
    if sub is None:
        raise JWTError("Token has no subject")
    return int(sub)


# ── Dependencies ─────────────────────────────────────────────────

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(401, "Not authorized, no token")

    try:
        user_id = decode_access_token(credentials.credentials)
    except (JWTError, ValueError) as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(401, "Not authorized, token failed")

    user = await db.get(User, user_id)
    if user is None:
        # Token outlived its user (account deleted after issue)
        raise HTTPException(401, "Not authorized, user not found")
    return user

