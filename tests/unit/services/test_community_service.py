"""Tests for community actions and page revalidation."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from app.core.events import PATHS_REVALIDATED, EventBus
from app.core.exceptions import Forbidden, NotFound
from app.core.page_cache import PageCache
from app.database.models import Community, UserRole
from app.schemas.auth import CurrentUser
from app.schemas.communities import CommunityCreate, CommunityUpdate
from app.services.community_service import CommunityService, community_paths
from app.services.permission_service import PermissionGrant

ORG_ID = uuid4()


def community_row(**overrides):
    values = dict(
        id=uuid4(),
        organization_id=ORG_ID,
        name="Comunidad Sol",
        address="Calle Mayor 1",
        postal_code="28001",
        admin_contact="admin@example.com",
        max_units=40,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )
    values.update(overrides)
    return Community(**values)


@pytest.fixture
def user():
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
    return CommunityService(AsyncMock(), bus, PageCache())


def grant_for(user, role="admin"):
    return PermissionGrant(
        user=user,
        roles=[UserRole(id=uuid4(), user_id=uuid4(), organization_id=ORG_ID, community_id=None, role=role)],
    )


def test_community_paths():
    community_id = uuid4()
    assert community_paths() == ["/communities"]
    assert community_paths(community_id) == ["/communities", f"/communities/{community_id}"]


class TestCommunityService:
    @pytest.mark.asyncio
    async def test_create_uses_caller_organization_and_revalidates(self, service, user, revalidations):
        row = community_row()
        with patch.object(service.permissions, "require_permission", AsyncMock(return_value=grant_for(user))), patch.object(
            service.repository, "create", AsyncMock(return_value=row)
        ) as create:
            result = await service.create_community(
                user, CommunityCreate(name="Comunidad Sol", admin_contact="admin@example.com", max_units=40)
            )

        assert result.id == row.id
        assert create.await_args.kwargs["organization_id"] == ORG_ID
        assert revalidations == [["/communities", f"/communities/{row.id}"]]

    @pytest.mark.asyncio
    async def test_denied_create_does_not_revalidate(self, service, user, revalidations):
        with patch.object(service.permissions, "require_permission", AsyncMock(side_effect=Forbidden())):
            with pytest.raises(Forbidden):
                await service.create_community(user, CommunityCreate(name="X", admin_contact="a@example.com"))

        assert revalidations == []

    @pytest.mark.asyncio
    async def test_update_only_sends_set_fields(self, service, user, revalidations):
        row = community_row(name="Comunidad Luna")
        with patch.object(service.permissions, "require_permission", AsyncMock(return_value=grant_for(user, "manager"))), patch.object(
            service.repository, "update", AsyncMock(return_value=row)
        ) as update:
            result = await service.update_community(user, row.id, CommunityUpdate(name="Comunidad Luna"))

        assert result.name == "Comunidad Luna"
        update.assert_awaited_once_with(row.id, name="Comunidad Luna")
        assert len(revalidations) == 1

    @pytest.mark.asyncio
    async def test_delete_missing_community(self, service, user, revalidations):
        with patch.object(service.permissions, "require_permission", AsyncMock(return_value=grant_for(user))), patch.object(
            service.repository, "delete", AsyncMock(return_value=False)
        ):
            with pytest.raises(NotFound):
                await service.delete_community(user, uuid4())

        assert revalidations == []

    @pytest.mark.asyncio
    async def test_listing_is_cached_until_revalidated(self, service, user, bus):
        service.page_cache.attach(bus)
        accessible = AsyncMock(return_value=[community_row()])

        with patch.object(service.permissions, "get_accessible_communities", accessible), patch.object(
            service.permissions, "require_permission", AsyncMock(return_value=grant_for(user))
        ), patch.object(service.repository, "delete", AsyncMock(return_value=True)):
            await service.list_communities(user)
            await service.list_communities(user)
            assert accessible.await_count == 1

            await service.delete_community(user, uuid4())
            await service.list_communities(user)
            assert accessible.await_count == 2
