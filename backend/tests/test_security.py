"""
Tests for password hashing and access tokens.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from payhub.core.config import settings
from payhub.core.exceptions import AuthenticationError
from payhub.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswords:
    def test_hash_roundtrip(self):
        hashed = hash_password("s3cret!")

        assert hashed.startswith("pbkdf2_sha256$")
        assert verify_password("s3cret!", hashed)
        assert not verify_password("wrong", hashed)

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    @pytest.mark.parametrize("stored", ["", "plain", "md5$1$salt$abc"])
    def test_unrecognized_hash_rejected(self, stored):
        assert not verify_password("anything", stored)


class TestTokens:
    def test_roundtrip(self):
        token = create_access_token("user-1")

        payload = decode_access_token(token)

        assert payload["sub"] == "user-1"
        assert payload["exp"] > payload["iat"]

    def test_expired(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "user-1",
                "iat": int((now - timedelta(hours=2)).timestamp()),
                "exp": int((now - timedelta(hours=1)).timestamp()),
            },
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(AuthenticationError, match="expired"):
            decode_access_token(token)

    def test_wrong_key(self):
        token = jwt.encode(
            {"sub": "user-1", "iat": 0, "exp": 9999999999},
            "another-secret-that-is-long-enough",
            algorithm="HS256",
        )

        with pytest.raises(AuthenticationError, match="Invalid"):
            decode_access_token(token)

    def test_missing_subject(self):
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {"iat": now, "exp": now + 60},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(AuthenticationError):
            decode_access_token(token)
