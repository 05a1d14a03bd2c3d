"""Unit tests for password hashing and access tokens."""

from datetime import timedelta
from uuid import uuid4

from jose import jwt

from tenantforge.config import settings
from tenantforge.core.auth.backend import (
    create_access_token,
    decode_token,
    hash_password,
)


class TestPasswordHashing:
    def test_hash_password_returns_bcrypt_hash(self):
        hashed = hash_password("siteadmin-secret")

        assert hashed != "siteadmin-secret"
        assert hashed.startswith("$2b$")

    def test_hash_password_is_salted(self):
        assert hash_password("same") != hash_password("same")


class TestAccessTokens:
    def test_round_trip_carries_identity(self):
        user_id = uuid4()

        token = create_access_token(user_id, is_admin=True, plan_slug="pro")
        data = decode_token(token)

        assert data is not None
        assert data.user_id == user_id
        assert data.is_admin is True
        assert data.plan_slug == "pro"
        assert data.type == "access"
        assert data.jti

    def test_defaults_to_non_admin_without_plan(self):
        data = decode_token(create_access_token(uuid4()))

        assert data.is_admin is False
        assert data.plan_slug is None

    def test_expired_token_rejected(self):
        token = create_access_token(uuid4(), expires_delta=timedelta(seconds=-5))

        assert decode_token(token) is None

    def test_tampered_token_rejected(self):
        token = create_access_token(uuid4())

        assert decode_token(token[:-4] + "AAAA") is None

    def test_wrong_key_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "exp": 9999999999},
            "not-the-secret",
            algorithm=settings.jwt_algorithm,
        )

        assert decode_token(token) is None

    def test_missing_subject_rejected(self):
        token = jwt.encode(
            {"exp": 9999999999}, settings.secret_key, algorithm=settings.jwt_algorithm
        )

        assert decode_token(token) is None

    def test_malformed_subject_rejected(self):
        token = jwt.encode(
            {"sub": "not-a-uuid", "exp": 9999999999},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        assert decode_token(token) is None

    def test_garbage_rejected(self):
        assert decode_token("not.a.jwt") is None
