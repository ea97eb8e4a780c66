"""Authentication routes: provider callback and session helpers."""

from typing import Annotated, Optional
from urllib.parse import unquote, urlsplit

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials

from app.core.auth import security
from app.core.exceptions import AppError
from app.dependencies import get_auth_service
from app.services.auth_service import AuthService
from app.utils.logging import get_logger
from app.utils.responses import create_api_response, http_error

LOGGER = get_logger(__name__)

router = APIRouter()

DEFAULT_NEXT_PATH = "/dashboard"
LOGIN_ERROR_PATH = "/login?error=auth_failed"
CODE_VERIFIER_COOKIE = "sb-code-verifier"


def safe_next_path(next_path: Optional[str]) -> str:
    """Decode ``next`` and keep it only if it is a same-origin relative path.

    >>> safe_next_path("%2Fcommunities%2F42")
    '/communities/42'
    >>> safe_next_path("https://evil.example/")
    '/dashboard'
    """
    if not next_path:
        return DEFAULT_NEXT_PATH
    decoded = unquote(next_path)
    parts = urlsplit(decoded)
    if (
        not decoded.startswith("/")
        or decoded.startswith("//")
        or "\\" in decoded
        or parts.scheme
        or parts.netloc
    ):
        return DEFAULT_NEXT_PATH
    return decoded


@router.get(
    "/callback",
    summary="Auth provider callback",
    description="Exchange the authorization code for a session and redirect",
    operation_id="auth_callback",
    response_class=RedirectResponse,
)
async def auth_callback(
    request: Request,
    code: Optional[str] = Query(None, description="Authorization code"),
    next_path: Optional[str] = Query(None, alias="next", description="Relative path to continue to"),
    auth_service: Annotated[AuthService, Depends(get_auth_service)] = None,
) -> RedirectResponse:
    if not code:
        LOGGER.warning("Auth callback without code")
        return RedirectResponse(LOGIN_ERROR_PATH, status_code=status.HTTP_303_SEE_OTHER)

    try:
        session = await auth_service.exchange_code_for_session(code, request.cookies.get(CODE_VERIFIER_COOKIE))
    except AppError as e:
        LOGGER.warning(f"Auth callback failed: {e.message}")
        return RedirectResponse(LOGIN_ERROR_PATH, status_code=status.HTTP_303_SEE_OTHER)

    response = RedirectResponse(safe_next_path(next_path), status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        "sb-access-token",
        session.access_token,
        max_age=session.expires_in,
        httponly=True,
        secure=request.url.scheme == "https",
        samesite="lax",
    )
    response.delete_cookie(CODE_VERIFIER_COOKIE)
    return response


@router.get(
    "/session",
    summary="Current session",
    operation_id="get_auth_session",
)
async def get_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: Annotated[AuthService, Depends(get_auth_service)] = None,
):
    """Fetch the session user from the auth provider on demand."""
    if not credentials:
        raise http_error("Unauthorized", status.HTTP_401_UNAUTHORIZED, "Authorization header missing", request)
    user = await auth_service.get_session(credentials.credentials)
    return create_api_response(data=user, message="Session retrieved successfully", request=request)


@router.post(
    "/signout",
    summary="Sign out",
    operation_id="sign_out",
)
async def sign_out(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: Annotated[AuthService, Depends(get_auth_service)] = None,
):
    if credentials:
        await auth_service.sign_out(credentials.credentials)
    response = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie("sb-access-token")
    return response
