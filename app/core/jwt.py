"""JWT verification for Supabase access tokens.

HS256 tokens are checked against the project JWT secret. RS256/ES256 tokens
are checked against the project's JWKS, fetched and cached by PyJWT's
``PyJWKClient``.
"""

import asyncio
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient

from app.core.config import SupabaseSettings
from app.core.exceptions import AuthFailed
from app.schemas.auth import JWTClaims
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

ASYMMETRIC_ALGORITHMS = ("RS256", "ES256")
REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss"]


class JWTVerifier:
    """Verifier for Supabase access tokens."""

    def __init__(self, supabase_url: str, jwt_secret: str = "", jwks_cache_ttl: int = 3600):
        """Initialize the verifier.

        Args:
            supabase_url: Supabase project URL, used for issuer validation
            jwt_secret: Project JWT secret for HS256 tokens
            jwks_cache_ttl: Seconds the fetched signing keys stay cached
        """
        self.supabase_url = supabase_url.rstrip("/")
        self.expected_issuer = f"{self.supabase_url}/auth/v1"
        self.jwt_secret = jwt_secret
        self._jwks_client = PyJWKClient(
            f"{self.expected_issuer}/.well-known/jwks.json",
            cache_keys=True,
            lifespan=jwks_cache_ttl,
        )

    @classmethod
    def from_settings(cls, settings: SupabaseSettings) -> "JWTVerifier":
        return cls(supabase_url=settings.url, jwt_secret=settings.jwt_secret, jwks_cache_ttl=settings.jwks_cache_ttl)

    async def _signing_key(self, token: str, alg: Optional[str]) -> Any:
        if alg == "HS256":
            if not self.jwt_secret:
                raise AuthFailed("HS256 token received but SUPABASE_JWT_SECRET is not configured")
            return self.jwt_secret
        if alg in ASYMMETRIC_ALGORITHMS:
            # PyJWKClient fetches over blocking urllib
            loop = asyncio.get_running_loop()
            signing_key = await loop.run_in_executor(None, self._jwks_client.get_signing_key_from_jwt, token)
            return signing_key.key
        raise AuthFailed(f"Unsupported token algorithm: {alg}")

    async def verify_token(self, token: str) -> JWTClaims:
        """Verify and decode a Supabase JWT.

        Args:
            token: Bearer access token

        Returns:
            Validated claims

        Raises:
            AuthFailed: If the token is malformed, expired or not trusted
        """
        try:
            alg = jwt.get_unverified_header(token).get("alg")
            key = await self._signing_key(token, alg)
            payload: Dict[str, Any] = jwt.decode(
                token,
                key,
                algorithms=[alg],
                audience="authenticated",
                issuer=self.expected_issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            LOGGER.warning(f"Token expired: {e}")
            raise AuthFailed("Token has expired", original_error=e) from e
        except jwt.PyJWKClientError as e:
            LOGGER.error(f"Could not resolve signing key: {e}", exc_info=True)
            raise AuthFailed("Token signing key unavailable", original_error=e) from e
        except jwt.InvalidTokenError as e:
            LOGGER.warning(f"Invalid token: {e}")
            raise AuthFailed("Invalid authentication token", original_error=e) from e

        claims = JWTClaims(**payload)
        LOGGER.debug(f"Verified token for user: {claims.sub}")
        return claims
