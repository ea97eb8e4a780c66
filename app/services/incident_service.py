"""Community incident actions.

Residents of a community report and read its incidents; managers edit,
assign, change status and delete them. Every successful mutation publishes
``paths.revalidated`` for the incident pages.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import PATHS_REVALIDATED, EventBus
from app.core.exceptions import NotFound, ValidationError
from app.database.models import Incident
from app.repositories.incident_repository import IncidentRepository
from app.schemas.auth import CurrentUser
from app.schemas.incidents import (
    IncidentCreate,
    IncidentResponse,
    IncidentStats,
    IncidentStatus,
    IncidentUpdate,
)
from app.services.permission_service import PermissionService, Role
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

INCIDENTS_PATH = "/incidents"


def incident_paths(incident_id: Optional[UUID] = None) -> List[str]:
    paths = [INCIDENTS_PATH]
    if incident_id is not None:
        paths.append(f"{INCIDENTS_PATH}/{incident_id}")
    return paths


class IncidentService:
    """Service for incident CRUD with permission checks."""

    def __init__(self, db_session: AsyncSession, bus: EventBus):
        self.repository = IncidentRepository(db_session)
        self.permissions = PermissionService(db_session)
        self.bus = bus

    async def _revalidate(self, incident_id: Optional[UUID] = None) -> None:
        await self.bus.publish(PATHS_REVALIDATED, paths=incident_paths(incident_id))

    async def _load(self, incident_id: UUID) -> Incident:
        incident = await self.repository.get_by_id(incident_id)
        if incident is None:
            raise NotFound(f"Incident {incident_id} not found")
        return incident

    async def _require_manager(self, user: Optional[CurrentUser], incident_id: UUID) -> Incident:
        incident = await self._load(incident_id)
        await self.permissions.require_permission(
            user, Role.MANAGER, incident.community_id, redirect_to=f"{INCIDENTS_PATH}/{incident_id}"
        )
        return incident

    async def _write(self, incident_id: UUID, **values) -> IncidentResponse:
        incident = await self.repository.update(incident_id, **values)
        if incident is None:
            raise NotFound(f"Incident {incident_id} not found")
        await self._revalidate(incident_id)
        return IncidentResponse.model_validate(incident)

    async def list_incidents(self, user: Optional[CurrentUser], community_id: UUID) -> List[IncidentResponse]:
        await self.permissions.require_permission(user, Role.RESIDENT, community_id, redirect_to=INCIDENTS_PATH)
        rows = await self.repository.list_for_community(community_id)
        return [IncidentResponse.model_validate(row) for row in rows]

    async def get_incident(self, user: Optional[CurrentUser], incident_id: UUID) -> IncidentResponse:
        incident = await self._load(incident_id)
        await self.permissions.require_permission(
            user, Role.RESIDENT, incident.community_id, redirect_to=INCIDENTS_PATH
        )
        return IncidentResponse.model_validate(incident)

    async def create_incident(self, user: Optional[CurrentUser], data: IncidentCreate) -> IncidentResponse:
        """Report an incident in a community the caller belongs to.

        The organization is taken from the caller's granting role row.

        Raises:
            AuthFailed: If unauthenticated
            Forbidden: If the caller has no role in the community
            ValidationError: If the caller's role row has no organization
        """
        grant = await self.permissions.require_permission(
            user, Role.RESIDENT, data.community_id, redirect_to=f"{INCIDENTS_PATH}/new"
        )
        if grant.organization_id is None:
            raise ValidationError("Caller has no organization")

        incident = await self.repository.create(
            organization_id=grant.organization_id,
            community_id=data.community_id,
            title=data.title,
            description=data.description,
            priority=data.priority.value,
            status=IncidentStatus.OPEN.value,
            reported_by=grant.user_id,
        )
        LOGGER.info(
            f"Incident {incident.id} reported",
            extra={"incident_id": str(incident.id), "community_id": str(data.community_id), "user_id": user.id},
        )
        await self._revalidate(incident.id)
        return IncidentResponse.model_validate(incident)

    async def update_incident(
        self, user: Optional[CurrentUser], incident_id: UUID, data: IncidentUpdate
    ) -> IncidentResponse:
        await self._require_manager(user, incident_id)
        values = data.model_dump(exclude_unset=True, mode="json")
        return await self._write(incident_id, **values)

    async def assign_incident(
        self, user: Optional[CurrentUser], incident_id: UUID, assignee_id: UUID
    ) -> IncidentResponse:
        """Assign an incident; an assigned incident is in progress."""
        await self._require_manager(user, incident_id)
        LOGGER.info(
            f"Incident {incident_id} assigned to {assignee_id}",
            extra={"incident_id": str(incident_id), "assignee_id": str(assignee_id)},
        )
        return await self._write(
            incident_id,
            assigned_to=assignee_id,
            status=IncidentStatus.IN_PROGRESS.value,
            resolved_at=None,
        )

    async def update_status(
        self, user: Optional[CurrentUser], incident_id: UUID, status: IncidentStatus
    ) -> IncidentResponse:
        """Change the status; closing stamps ``resolved_at`` and reopening clears it."""
        await self._require_manager(user, incident_id)
        status = IncidentStatus(status)
        resolved_at = datetime.now(timezone.utc) if status == IncidentStatus.CLOSED else None
        return await self._write(incident_id, status=status.value, resolved_at=resolved_at)

    async def delete_incident(self, user: Optional[CurrentUser], incident_id: UUID) -> None:
        await self._require_manager(user, incident_id)
        if not await self.repository.delete(incident_id):
            raise NotFound(f"Incident {incident_id} not found")

        LOGGER.info(f"Deleted incident {incident_id}", extra={"incident_id": str(incident_id)})
        await self._revalidate(incident_id)

    async def get_stats(self, user: Optional[CurrentUser], community_id: UUID) -> IncidentStats:
        await self.permissions.require_permission(user, Role.RESIDENT, community_id, redirect_to=INCIDENTS_PATH)
        counts = await self.repository.count_by_status(community_id)
        return IncidentStats(
            total=sum(counts.values()),
            open=counts.get(IncidentStatus.OPEN.value, 0),
            in_progress=counts.get(IncidentStatus.IN_PROGRESS.value, 0),
            closed=counts.get(IncidentStatus.CLOSED.value, 0),
        )
