"""
Password hashing and JWT access tokens.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from payhub.core.config import settings
from payhub.core.exceptions import AuthenticationError

PBKDF2_ITERATIONS = 390_000


def hash_password(password: str) -> str:
    """
    Hash password with PBKDF2-SHA256 and a random salt.

    Format: pbkdf2_sha256$<iterations>$<salt>$<hex digest>
    """
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS
    ).hex()
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest}"


def verify_password(password: str, hashed: str) -> bool:
    """Check password against a stored hash in constant time."""
    try:
        algorithm, iterations, salt, expected = hashed.split("$", 3)
    except ValueError:
        return False

    if algorithm != "pbkdf2_sha256":
        return False

    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), int(iterations)
    ).hex()
    return hmac.compare_digest(digest, expected)


def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    """Issue a signed access token for the given user id."""
    now = datetime.now(timezone.utc)
    ttl = expires_minutes or settings.jwt_access_token_expire_minutes
    payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        AuthenticationError: If the token is expired or invalid
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Access token expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid access token") from e
