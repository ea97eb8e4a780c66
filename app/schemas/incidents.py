"""Request and response schemas for community incidents."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class IncidentStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class IncidentPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class IncidentCreate(BaseModel):
    community_id: UUID = Field(..., description="Community the incident belongs to")
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    priority: IncidentPriority = IncidentPriority.MEDIUM


class IncidentUpdate(BaseModel):
    """Partial update of the descriptive fields; status and assignee have their own actions."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[IncidentPriority] = None


class IncidentAssign(BaseModel):
    assignee_id: UUID


class IncidentStatusUpdate(BaseModel):
    status: IncidentStatus


class IncidentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    community_id: UUID
    title: str
    description: Optional[str] = None
    status: IncidentStatus
    priority: IncidentPriority
    reported_by: Optional[UUID] = None
    assigned_to: Optional[UUID] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IncidentStats(BaseModel):
    total: int = 0
    open: int = 0
    in_progress: int = 0
    closed: int = 0
