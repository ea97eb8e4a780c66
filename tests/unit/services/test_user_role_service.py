"""Tests for admin role management and the pages it revalidates."""

from unittest.mock import AsyncMock, patch
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.events import PATHS_REVALIDATED, EventBus
from app.core.exceptions import Forbidden, ValidationError
from app.core.page_cache import PageCache
from app.database.models import Community, UserRole
from app.schemas.auth import CurrentUser
from app.schemas.users import RoleAssignment, UserRolesUpdate
from app.services.community_service import CommunityService
from app.services.permission_service import PermissionGrant, Role
from app.services.user_role_service import UserRoleService, group_by_user

ORG_ID = uuid4()


def role_row(user_id, role, community_id=None):
    return UserRole(id=uuid4(), user_id=user_id, organization_id=ORG_ID, community_id=community_id, role=role)


@pytest.fixture
def admin():
    return CurrentUser(id=str(uuid4()))


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def revalidations(bus):
    received = []
    bus.subscribe(PATHS_REVALIDATED, lambda event: received.append(event.payload["paths"]))
    return received


@pytest.fixture
def service(bus):
    return UserRoleService(AsyncMock(), bus)


def admin_grant(user):
    return PermissionGrant(user=user, roles=[role_row(UUID(user.id), "admin")])


def test_group_by_user_keeps_every_role():
    first, second = uuid4(), uuid4()
    community = uuid4()

    grouped = group_by_user(
        [role_row(first, "manager", community), role_row(second, "resident", community), role_row(first, "resident")]
    )

    assert [entry.user_id for entry in grouped] == [first, second]
    assert [assignment.role for assignment in grouped[0].roles] == [Role.MANAGER, Role.RESIDENT]
    assert grouped[0].roles[1].community_id is None


def test_duplicate_assignments_are_rejected():
    community = str(uuid4())

    with pytest.raises(PydanticValidationError):
        UserRolesUpdate(
            roles=[{"role": "manager", "community_id": community}, {"role": "manager", "community_id": community}]
        )


class TestUserRoleService:
    @pytest.mark.asyncio
    async def test_admin_replaces_roles_and_revalidates(self, service, admin, revalidations):
        target = uuid4()
        community = uuid4()
        rows = [role_row(target, "manager", community)]
        with patch.object(service.permissions, "require_permission", AsyncMock(return_value=admin_grant(admin))), patch.object(
            service.repository, "replace_for_user", AsyncMock(return_value=rows)
        ) as replace:
            result = await service.set_roles(admin, target, [RoleAssignment(role=Role.MANAGER, community_id=community)])

        replace.assert_awaited_once_with(target, ORG_ID, [("manager", community)])
        assert result.roles == [RoleAssignment(role=Role.MANAGER, community_id=community)]
        assert revalidations == [["/users", f"/users/{target}", "/communities"]]

    @pytest.mark.asyncio
    async def test_non_admin_cannot_change_roles(self, service, admin, revalidations):
        with patch.object(service.permissions, "require_permission", AsyncMock(side_effect=Forbidden())), patch.object(
            service.repository, "replace_for_user", AsyncMock()
        ) as replace:
            with pytest.raises(Forbidden):
                await service.set_roles(admin, uuid4(), [])

        replace.assert_not_called()
        assert revalidations == []

    @pytest.mark.asyncio
    async def test_admin_cannot_drop_own_admin_role(self, service, admin):
        with patch.object(service.permissions, "require_permission", AsyncMock(return_value=admin_grant(admin))), patch.object(
            service.repository, "replace_for_user", AsyncMock()
        ) as replace:
            with pytest.raises(ValidationError):
                await service.revoke_roles(admin, UUID(admin.id))

        replace.assert_not_called()

    @pytest.mark.asyncio
    async def test_revoke_writes_empty_role_set(self, service, admin, revalidations):
        target = uuid4()
        with patch.object(service.permissions, "require_permission", AsyncMock(return_value=admin_grant(admin))), patch.object(
            service.repository, "replace_for_user", AsyncMock(return_value=[])
        ) as replace:
            await service.revoke_roles(admin, target)

        replace.assert_awaited_once_with(target, ORG_ID, [])
        assert len(revalidations) == 1

    @pytest.mark.asyncio
    async def test_role_change_refreshes_cached_community_listing(self, bus, admin):
        cache = PageCache()
        cache.attach(bus)
        communities = CommunityService(AsyncMock(), bus, cache)
        roles = UserRoleService(AsyncMock(), bus)
        resident = CurrentUser(id=str(uuid4()))
        sol = Community(id=uuid4(), organization_id=ORG_ID, name="Comunidad Sol", max_units=10)
        luna = Community(id=uuid4(), organization_id=ORG_ID, name="Comunidad Luna", max_units=10)
        accessible = AsyncMock(side_effect=[[sol], [luna, sol]])

        with patch.object(communities.permissions, "get_accessible_communities", accessible), patch.object(
            roles.permissions, "require_permission", AsyncMock(return_value=admin_grant(admin))
        ), patch.object(roles.repository, "replace_for_user", AsyncMock(return_value=[])):
            before = await communities.list_communities(resident)
            await roles.set_roles(
                admin,
                UUID(resident.id),
                [RoleAssignment(role=Role.RESIDENT, community_id=sol.id), RoleAssignment(role=Role.RESIDENT, community_id=luna.id)],
            )
            after = await communities.list_communities(resident)

        assert [community.name for community in before] == ["Comunidad Sol"]
        assert [community.name for community in after] == ["Comunidad Luna", "Comunidad Sol"]
        assert accessible.await_count == 2
