"""Schemas for user role management."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.services.permission_service import Role


class RoleAssignment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: Role
    community_id: Optional[UUID] = Field(None, description="Community scope; null is a global grant")


class UserRolesUpdate(BaseModel):
    """Full replacement of a user's roles; an empty list revokes them all."""

    roles: List[RoleAssignment] = Field(default_factory=list)

    @field_validator("roles")
    @classmethod
    def unique_assignments(cls, roles: List[RoleAssignment]) -> List[RoleAssignment]:
        seen = set()
        for assignment in roles:
            key = (assignment.role, assignment.community_id)
            if key in seen:
                raise ValueError(f"Duplicate role assignment: {assignment.role.value} for {assignment.community_id}")
            seen.add(key)
        return roles


class UserRolesResponse(BaseModel):
    user_id: UUID
    roles: List[RoleAssignment] = Field(default_factory=list)
