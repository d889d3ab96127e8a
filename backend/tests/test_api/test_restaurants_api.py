"""Tests for the /api/restaurants endpoints."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from factories import auth_headers_for, create_restaurant, create_user

RESTAURANT_DATA = {
    "name": "Spice Garden",
    "description": "North Indian classics",
    "phone": "+91 98765 43210",
    "email": "hello@spicegarden.example.com",
}


class TestCreateRestaurant:
    @pytest.mark.asyncio
    async def test_create_starts_trial(self, client: AsyncClient, auth_headers: dict, test_user: User):
        response = await client.post("/api/restaurants", json=RESTAURANT_DATA, headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        restaurant = body["restaurant"]
        assert restaurant["name"] == "Spice Garden"
        assert restaurant["owner_id"] == str(test_user.id)
        assert restaurant["slug"].startswith("spice-garden-")
        assert restaurant["qr_code_url"].endswith(f"/menu/{restaurant['slug']}")
        assert body["subscription"]["plan"] == "trial"
        assert body["subscription"]["status"] == "trialing"
        assert "trialEnd" in body["subscription"]

    @pytest.mark.asyncio
    async def test_status_after_create(self, client: AsyncClient, auth_headers: dict):
        await client.post("/api/restaurants", json=RESTAURANT_DATA, headers=auth_headers)

        response = await client.get("/api/subscription/status", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["isActive"] is True
        assert response.json()["daysRemaining"] == 7

    @pytest.mark.asyncio
    async def test_second_restaurant_rejected(self, client: AsyncClient, auth_headers: dict):
        first = await client.post("/api/restaurants", json=RESTAURANT_DATA, headers=auth_headers)
        assert first.status_code == 201

        second = await client.post(
            "/api/restaurants", json={"name": "Another Place"}, headers=auth_headers
        )
        assert second.status_code == 400
        assert second.json()["detail"] == "You already have a restaurant. Upgrade to add more."

    @pytest.mark.asyncio
    async def test_validation(self, client: AsyncClient, auth_headers: dict):
        response = await client.post("/api/restaurants", json={"name": ""}, headers=auth_headers)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/restaurants", json=RESTAURANT_DATA)
        assert response.status_code == 401


class TestGetRestaurant:
    @pytest.mark.asyncio
    async def test_my_restaurant(
        self, client: AsyncClient, db_session: AsyncSession, test_user: User, auth_headers: dict
    ):
        restaurant, _ = await create_restaurant(db_session, test_user)

        response = await client.get("/api/restaurants/my", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == str(restaurant.id)

    @pytest.mark.asyncio
    async def test_my_restaurant_missing(self, client: AsyncClient, auth_headers: dict):
        response = await client.get("/api/restaurants/my", headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_qr_readable_after_expiry(
        self, client: AsyncClient, db_session: AsyncSession, test_user: User, auth_headers: dict
    ):
        """Reading the QR code is not gated."""
        restaurant, _ = await create_restaurant(db_session, test_user, status="canceled")

        response = await client.get(f"/api/restaurants/{restaurant.id}/qr", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["qrCode"] == restaurant.qr_code_url
        assert body["menuUrl"] == f"http://localhost:3000/menu/{restaurant.slug}"

    @pytest.mark.asyncio
    async def test_qr_of_other_owner_forbidden(
        self, client: AsyncClient, db_session: AsyncSession, auth_headers: dict
    ):
        other = await create_user(db_session)
        restaurant, _ = await create_restaurant(db_session, other)

        response = await client.get(f"/api/restaurants/{restaurant.id}/qr", headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied"

    @pytest.mark.asyncio
    async def test_qr_unknown_restaurant(self, client: AsyncClient, auth_headers: dict):
        response = await client.get(f"/api/restaurants/{uuid.uuid4()}/qr", headers=auth_headers)
        assert response.status_code == 404


class TestGatedMutations:
    @pytest.mark.asyncio
    async def test_update_during_trial(
        self, client: AsyncClient, db_session: AsyncSession, test_user: User, auth_headers: dict
    ):
        restaurant, _ = await create_restaurant(db_session, test_user)

        response = await client.put(
            f"/api/restaurants/{restaurant.id}",
            json={"description": "Now serving brunch"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["description"] == "Now serving brunch"

    @pytest.mark.asyncio
    async def test_regenerate_qr_active_paid(self, client: AsyncClient, db_session: AsyncSession):
        user = await create_user(db_session)
        restaurant, _ = await create_restaurant(
            db_session, user, plan="premium", status="active", stripe_subscription_id="sub_qr"
        )
        restaurant.qr_code_url = "http://old-host/menu/stale"
        await db_session.flush()

        response = await client.post(
            f"/api/restaurants/{restaurant.id}/qr/regenerate", headers=auth_headers_for(user)
        )
        assert response.status_code == 200
        assert response.json()["qrCode"] == f"http://localhost:3000/menu/{restaurant.slug}"

    @pytest.mark.asyncio
    async def test_update_blocked_when_canceled(self, client: AsyncClient, db_session: AsyncSession):
        user = await create_user(db_session)
        restaurant, _ = await create_restaurant(
            db_session, user, plan="premium", status="canceled", stripe_subscription_id="sub_gone"
        )

        response = await client.put(
            f"/api/restaurants/{restaurant.id}",
            json={"description": "Should not apply"},
            headers=auth_headers_for(user),
        )
        assert response.status_code == 403
        assert response.json()["detail"]["subscriptionStatus"] == "canceled"
        assert restaurant.description is None
