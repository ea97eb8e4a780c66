"""API tests for community routes."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.core.exceptions import AuthFailed, Forbidden
from app.dependencies import get_community_service
from app.main import app
from app.schemas.communities import CommunityResponse


@pytest.fixture
def community():
    return CommunityResponse(
        id=uuid4(),
        organization_id=uuid4(),
        name="Comunidad Sol",
        max_units=40,
        created_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def community_service(community):
    service = MagicMock()
    service.list_communities = AsyncMock(return_value=[community])
    service.create_community = AsyncMock(return_value=community)
    service.update_community = AsyncMock(return_value=community)
    service.delete_community = AsyncMock(return_value=None)
    app.dependency_overrides[get_community_service] = lambda: service
    return service


class TestCommunityRoutes:
    def test_list(self, test_client, authenticated, community, community_service):
        response = test_client.get("/api/v1/communities")

        assert response.status_code == 200
        assert response.json()["data"]["items"][0]["name"] == "Comunidad Sol"

    def test_create(self, test_client, authenticated, community_service):
        response = test_client.post(
            "/api/v1/communities", json={"name": "Comunidad Sol", "admin_contact": "admin@example.com", "max_units": 40}
        )

        assert response.status_code == 201
        body = community_service.create_community.await_args.args[1]
        assert body.max_units == 40

    def test_create_validates_body(self, test_client, authenticated, community_service):
        response = test_client.post("/api/v1/communities", json={"name": "", "max_units": 0})

        assert response.status_code == 422
        community_service.create_community.assert_not_called()

    def test_create_forbidden(self, test_client, authenticated, community_service):
        community_service.create_community.side_effect = Forbidden("Requires role admin")

        response = test_client.post("/api/v1/communities", json={"name": "Comunidad Sol"})

        assert response.status_code == 403
        assert response.json()["detail"]["detail"] == "Requires role admin"

    def test_update_sends_partial_body(self, test_client, authenticated, community, community_service):
        response = test_client.patch(f"/api/v1/communities/{community.id}", json={"max_units": 50})

        assert response.status_code == 200
        update = community_service.update_community.await_args.args[2]
        assert update.model_dump(exclude_unset=True) == {"max_units": 50}

    def test_delete(self, test_client, authenticated, community, community_service):
        response = test_client.delete(f"/api/v1/communities/{community.id}")

        assert response.status_code == 200
        community_service.delete_community.assert_awaited_once()

    def test_unauthenticated_service_error_is_401(self, test_client, authenticated, community_service):
        community_service.list_communities.side_effect = AuthFailed("Authentication required")

        response = test_client.get("/api/v1/communities")

        assert response.status_code == 401
