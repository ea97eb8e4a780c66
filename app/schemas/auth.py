"""Authentication schemas for Supabase tokens and sessions."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class JWTClaims(BaseModel):
    """Claims extracted from a Supabase access token."""

    sub: str = Field(..., description="Subject (user ID)")
    email: Optional[str] = Field(None, description="User email")
    role: str = Field(default="authenticated", description="Token role")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
    iss: str = Field(..., description="Token issuer")
    aud: Optional[str] = Field(None, description="Audience")
    app_metadata: Optional[Dict[str, Any]] = Field(None, description="Application metadata")
    user_metadata: Optional[Dict[str, Any]] = Field(None, description="User metadata")
    session_id: Optional[str] = Field(None, description="Session ID")


class CurrentUser(BaseModel):
    """Authenticated caller."""

    id: str = Field(..., description="Supabase user ID")
    email: Optional[str] = Field(None, description="User email")
    role: str = Field(default="authenticated", description="Token role")
    app_metadata: Optional[Dict[str, Any]] = Field(None, description="Application metadata")
    user_metadata: Optional[Dict[str, Any]] = Field(None, description="User metadata")


class AuthSession(BaseModel):
    """Session returned by the auth provider after a code exchange."""

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: CurrentUser
