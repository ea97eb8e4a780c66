"""Request and response schemas for communities."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CommunityCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Community name")
    address: Optional[str] = Field(None, description="Street address")
    postal_code: Optional[str] = Field(None, description="Postal code")
    admin_contact: Optional[EmailStr] = Field(None, description="Administrator contact email")
    max_units: int = Field(default=100, ge=1, description="Maximum number of units")


class CommunityUpdate(BaseModel):
    """Partial update; only fields that are set are written."""

    name: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    postal_code: Optional[str] = None
    admin_contact: Optional[EmailStr] = None
    max_units: Optional[int] = Field(None, ge=1)


class CommunityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    name: str
    address: Optional[str] = None
    postal_code: Optional[str] = None
    admin_contact: Optional[str] = None
    max_units: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
