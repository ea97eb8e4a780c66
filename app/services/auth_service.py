"""Session handling against Supabase Auth.

Sessions are fetched on demand; nothing is cached server-side. Sign-in and
sign-out are announced on the application event bus.
"""

from typing import Any, Dict, Optional

import httpx

from app.core.config import Settings
from app.core.events import AUTH_SIGNED_IN, AUTH_SIGNED_OUT, EventBus
from app.core.exceptions import AuthFailed, TransportError
from app.schemas.auth import AuthSession, CurrentUser
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


def _to_user(data: Dict[str, Any]) -> CurrentUser:
    return CurrentUser(
        id=data["id"],
        email=data.get("email"),
        role=data.get("role") or "authenticated",
        app_metadata=data.get("app_metadata"),
        user_metadata=data.get("user_metadata"),
    )


class AuthService:
    def __init__(self, supabase_url: str, anon_key: str, bus: EventBus, timeout: int = 30):
        self.auth_url = f"{supabase_url.rstrip('/')}/auth/v1"
        self.anon_key = anon_key
        self.bus = bus
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, bus: EventBus) -> "AuthService":
        return cls(
            supabase_url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            bus=bus,
            timeout=settings.http_timeout,
        )

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {"apikey": self.anon_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> AuthSession:
        """Exchange a PKCE authorization code for a session.

        Args:
            code: Authorization code from the provider redirect
            code_verifier: PKCE verifier stored by the client at sign-in

        Returns:
            The new session

        Raises:
            AuthFailed: If the provider rejects the code
            TransportError: If the provider cannot be reached
        """
        payload = {"auth_code": code}
        if code_verifier:
            payload["code_verifier"] = code_verifier

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.auth_url}/token",
                    params={"grant_type": "pkce"},
                    json=payload,
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Auth code exchange failed: {e}", exc_info=True)
            raise TransportError(f"Auth provider unreachable: {e}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.warning(
                "Auth provider rejected code exchange",
                extra={"status_code": response.status_code},
            )
            raise AuthFailed(f"Code exchange rejected with status {response.status_code}")

        data = response.json()
        session = AuthSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type", "bearer"),
            expires_in=data.get("expires_in"),
            user=_to_user(data["user"]),
        )
        LOGGER.info(f"Signed in user {session.user.id}", extra={"user_id": session.user.id})
        await self.bus.publish(AUTH_SIGNED_IN, user_id=session.user.id)
        return session

    async def get_session(self, access_token: str) -> CurrentUser:
        """Fetch the user behind an access token from the provider.

        Raises:
            AuthFailed: If the token is rejected
            TransportError: If the provider cannot be reached
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.auth_url}/user", headers=self._headers(access_token))
        except httpx.HTTPError as e:
            LOGGER.error(f"Session fetch failed: {e}", exc_info=True)
            raise TransportError(f"Auth provider unreachable: {e}", original_error=e) from e

        if response.status_code != 200:
            raise AuthFailed(f"Session rejected with status {response.status_code}")
        return _to_user(response.json())

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session; an already invalid token counts as signed out."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.auth_url}/logout", headers=self._headers(access_token))
        except httpx.HTTPError as e:
            LOGGER.error(f"Sign out failed: {e}", exc_info=True)
            raise TransportError(f"Auth provider unreachable: {e}", original_error=e) from e

        if response.status_code not in (200, 204, 401):
            raise AuthFailed(f"Sign out rejected with status {response.status_code}")
        await self.bus.publish(AUTH_SIGNED_OUT)
