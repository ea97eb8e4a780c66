"""Authentication dependencies for FastAPI routes.

The bearer token is verified on every request; there is no server-side
session state. The verifier is created in the application lifespan and
read from ``app.state``.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.exceptions import AuthFailed, ConfigurationError
from app.core.jwt import JWTVerifier
from app.schemas.auth import CurrentUser
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

security = HTTPBearer(auto_error=False)


def get_jwt_verifier(request: Request) -> JWTVerifier:
    verifier = getattr(request.app.state, "jwt_verifier", None)
    if verifier is None:
        raise ConfigurationError("JWT verifier is not initialized")
    return verifier


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: JWTVerifier = Depends(get_jwt_verifier),
) -> CurrentUser:
    """Return the caller identified by the bearer token.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not credentials:
        LOGGER.warning("No authorization credentials provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        claims = await verifier.verify_token(credentials.credentials)
    except AuthFailed as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user = CurrentUser(
        id=claims.sub,
        email=claims.email,
        role=claims.role,
        app_metadata=claims.app_metadata,
        user_metadata=claims.user_metadata,
    )
    LOGGER.debug(f"Authenticated user: {user.id}")
    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: JWTVerifier = Depends(get_jwt_verifier),
) -> Optional[CurrentUser]:
    """Return the caller if the token is valid, None otherwise."""
    if not credentials:
        return None
    try:
        return await get_current_user(credentials, verifier)
    except HTTPException:
        return None
