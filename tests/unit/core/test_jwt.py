"""Tests for Supabase access token verification."""

import time

import jwt
import pytest

from app.core.exceptions import AuthFailed
from app.core.jwt import JWTVerifier

SUPABASE_URL = "https://project.supabase.test"
SECRET = "unit-test-secret-with-enough-length-for-hs256"


def make_token(secret=SECRET, **overrides):
    now = int(time.time())
    claims = {
        "sub": "6f1c4c3e-8a5d-4d4e-9f53-0a3b2d5a7c11",
        "email": "vecino@example.com",
        "role": "authenticated",
        "aud": "authenticated",
        "iss": f"{SUPABASE_URL}/auth/v1",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def verifier():
    return JWTVerifier(supabase_url=SUPABASE_URL + "/", jwt_secret=SECRET)


class TestJWTVerifier:
    def test_issuer_derived_from_url(self, verifier):
        assert verifier.expected_issuer == "https://project.supabase.test/auth/v1"

    @pytest.mark.asyncio
    async def test_valid_token(self, verifier):
        claims = await verifier.verify_token(make_token())

        assert claims.sub == "6f1c4c3e-8a5d-4d4e-9f53-0a3b2d5a7c11"
        assert claims.email == "vecino@example.com"

    @pytest.mark.asyncio
    async def test_expired_token(self, verifier):
        now = int(time.time())
        with pytest.raises(AuthFailed, match="expired"):
            await verifier.verify_token(make_token(iat=now - 7200, exp=now - 3600))

    @pytest.mark.asyncio
    async def test_wrong_signature(self, verifier):
        with pytest.raises(AuthFailed):
            await verifier.verify_token(make_token(secret="another-secret-with-enough-length-for-hs256"))

    @pytest.mark.asyncio
    async def test_wrong_issuer(self, verifier):
        with pytest.raises(AuthFailed):
            await verifier.verify_token(make_token(iss="https://other.supabase.test/auth/v1"))

    @pytest.mark.asyncio
    async def test_wrong_audience(self, verifier):
        with pytest.raises(AuthFailed):
            await verifier.verify_token(make_token(aud="anon"))

    @pytest.mark.asyncio
    async def test_garbage_token(self, verifier):
        with pytest.raises(AuthFailed):
            await verifier.verify_token("not-a-jwt")

    @pytest.mark.asyncio
    async def test_hs256_without_secret(self):
        verifier = JWTVerifier(supabase_url=SUPABASE_URL)
        with pytest.raises(AuthFailed, match="SUPABASE_JWT_SECRET"):
            await verifier.verify_token(make_token())
