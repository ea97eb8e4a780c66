"""Tests for role-based permission checks."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from app.core.exceptions import AuthFailed, Forbidden
from app.database.models import Community, UserRole
from app.schemas.auth import CurrentUser
from app.services.permission_service import PermissionService, Role, role_grants

ORG_ID = uuid4()
COMMUNITY_A = uuid4()
COMMUNITY_B = uuid4()


def role_row(role, community_id=None):
    return UserRole(id=uuid4(), user_id=uuid4(), organization_id=ORG_ID, community_id=community_id, role=role)


class TestRoleGrants:
    def test_admin_always_grants(self):
        row = role_row("admin", COMMUNITY_A)
        assert role_grants(row, Role.ADMIN, COMMUNITY_B)

    def test_rank_must_be_sufficient(self):
        assert not role_grants(role_row("resident", COMMUNITY_A), Role.MANAGER, COMMUNITY_A)
        assert role_grants(role_row("manager", COMMUNITY_A), Role.RESIDENT, COMMUNITY_A)

    def test_scoped_row_only_grants_its_community(self):
        row = role_row("manager", COMMUNITY_A)
        assert role_grants(row, Role.MANAGER, COMMUNITY_A)
        assert not role_grants(row, Role.MANAGER, COMMUNITY_B)

    def test_global_row_grants_any_community(self):
        assert role_grants(role_row("manager"), Role.MANAGER, COMMUNITY_B)

    def test_unscoped_requirement(self):
        assert role_grants(role_row("manager", COMMUNITY_A), Role.MANAGER)

    def test_role_ordering(self):
        assert Role.ADMIN.rank > Role.MANAGER.rank > Role.RESIDENT.rank


class TestPermissionService:
    @pytest.fixture
    def user(self):
        return CurrentUser(id=str(uuid4()))

    @pytest.fixture
    def service(self):
        return PermissionService(AsyncMock())

    @pytest.mark.asyncio
    async def test_require_permission_without_user(self, service):
        with pytest.raises(AuthFailed):
            await service.require_permission(None, Role.RESIDENT)

    @pytest.mark.asyncio
    async def test_require_permission_denied_carries_redirect(self, service, user):
        with patch.object(service, "get_user_roles", AsyncMock(return_value=[role_row("resident", COMMUNITY_A)])):
            with pytest.raises(Forbidden) as exc_info:
                await service.require_permission(user, Role.MANAGER, COMMUNITY_A, redirect_to="/communities")

        assert exc_info.value.redirect_to == "/communities?error=insufficient_permissions"

    @pytest.mark.asyncio
    async def test_require_permission_returns_granting_rows(self, service, user):
        rows = [role_row("resident", COMMUNITY_B), role_row("manager", COMMUNITY_A)]
        with patch.object(service, "get_user_roles", AsyncMock(return_value=rows)):
            grant = await service.require_permission(user, Role.MANAGER, COMMUNITY_A)

        assert grant.roles == [rows[1]]
        assert grant.organization_id == ORG_ID
        assert not grant.is_admin
        assert str(grant.user_id) == user.id

    @pytest.mark.asyncio
    async def test_is_admin(self, service, user):
        with patch.object(service, "get_user_roles", AsyncMock(return_value=[role_row("admin")])):
            assert await service.is_admin(uuid4())

    @pytest.mark.asyncio
    async def test_can_access_community(self, service):
        with patch.object(service, "get_user_roles", AsyncMock(return_value=[role_row("resident", COMMUNITY_A)])):
            assert await service.can_access_community(uuid4(), COMMUNITY_A)
            assert not await service.can_access_community(uuid4(), COMMUNITY_B)

    @pytest.mark.asyncio
    async def test_admin_sees_all_communities(self, service):
        communities = [Community(id=COMMUNITY_A, organization_id=ORG_ID, name="Sol")]
        with patch.object(service, "get_user_roles", AsyncMock(return_value=[role_row("admin")])), patch.object(
            service.communities, "list_all_ordered", AsyncMock(return_value=communities)
        ) as list_all:
            assert await service.get_accessible_communities(uuid4()) == communities
        list_all.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_non_admin_sees_scoped_communities(self, service):
        rows = [role_row("resident", COMMUNITY_A), role_row("manager")]
        with patch.object(service, "get_user_roles", AsyncMock(return_value=rows)), patch.object(
            service.communities, "list_by_ids", AsyncMock(return_value=[])
        ) as list_by_ids:
            await service.get_accessible_communities(uuid4())
        list_by_ids.assert_awaited_once_with({COMMUNITY_A})
