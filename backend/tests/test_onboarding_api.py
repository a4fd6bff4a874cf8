"""Onboarding endpoint tests."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from smarttherapy.models.clinic import Clinic
from smarttherapy.models.user import User

CLINIC = {
    "name": "Klinik Harapan",
    "address": "Jl. Sudirman No. 5, Bandung",
    "phone": "+62 22 555 0199",
    "email": "harapan@example.com",
}
SUBSCRIPTION = {"tier_code": "alpha", "billing_cycle": "monthly", "amount": 100000}
PAYMENT = {"payment_method": "bank_transfer", "amount": 100000, "transaction_id": "TX-42"}


@pytest.mark.api
@pytest.mark.asyncio
class TestOnboardingStatus:
    async def test_requires_auth(self, client: AsyncClient):
        resp = await client.get("/api/onboarding/status")
        assert resp.status_code == 401

    async def test_new_user(self, client: AsyncClient, auth_headers):
        resp = await client.get("/api/onboarding/status", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["needs_onboarding"] is True
        assert data["has_clinic"] is False
        assert data["current_step"] == "clinic_info"

    async def test_onboarded_user(self, client: AsyncClient, clinic_headers):
        resp = await client.get("/api/onboarding/status", headers=clinic_headers)
        data = resp.json()
        assert data["needs_onboarding"] is False
        assert data["current_step"] == "complete"
        assert data["subscription_tier"] == "Alpha"

    async def test_status_is_cached(self, client: AsyncClient, auth_headers, test_user, redis_client):
        await client.get("/api/onboarding/status", headers=auth_headers)
        assert f"onboarding:status:{test_user.id}" in redis_client.store


@pytest.mark.api
@pytest.mark.asyncio
class TestDirectSubmissions:
    async def test_steps_in_order(self, client: AsyncClient, auth_headers, tiers, redis_client):
        await client.get("/api/onboarding/status", headers=auth_headers)

        resp = await client.post("/api/onboarding/clinic", headers=auth_headers, json=CLINIC)
        assert resp.status_code == 201, resp.text
        assert resp.json()["status"]["current_step"] == "subscription"
        assert redis_client.store == {}  # invalidated

        resp = await client.post(
            "/api/onboarding/subscription", headers=auth_headers, json=SUBSCRIPTION
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["status"]["current_step"] == "payment"

        resp = await client.post("/api/onboarding/payment", headers=auth_headers, json=PAYMENT)
        assert resp.json()["status"]["current_step"] == "complete"

        resp = await client.post("/api/onboarding/complete", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    async def test_subscription_before_clinic(self, client: AsyncClient, auth_headers, tiers):
        resp = await client.post(
            "/api/onboarding/subscription", headers=auth_headers, json=SUBSCRIPTION
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "CLINIC_REQUIRED"

    async def test_wrong_amount(self, client: AsyncClient, auth_headers, tiers):
        await client.post("/api/onboarding/clinic", headers=auth_headers, json=CLINIC)
        resp = await client.post(
            "/api/onboarding/subscription",
            headers=auth_headers,
            json={**SUBSCRIPTION, "amount": 1},
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["expected"] == 100000

    async def test_duplicate_clinic(self, client: AsyncClient, auth_headers, test_clinic):
        resp = await client.post(
            "/api/onboarding/clinic",
            headers=auth_headers,
            json={**CLINIC, "name": test_clinic.name},
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "CLINIC_EXISTS"

    async def test_complete_too_early(self, client: AsyncClient, auth_headers):
        resp = await client.post("/api/onboarding/complete", headers=auth_headers)
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "ONBOARDING_INCOMPLETE"


@pytest.mark.api
@pytest.mark.asyncio
class TestWizard:
    async def test_initial_state(self, client: AsyncClient, auth_headers):
        resp = await client.get("/api/onboarding/wizard", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["current_step"] == "clinic_info"
        assert data["error"] is None
        assert data["can_go_back"] is False

    async def test_full_wizard(self, client: AsyncClient, auth_headers, tiers):
        resp = await client.post("/api/onboarding/wizard/clinic", headers=auth_headers, json=CLINIC)
        assert resp.json()["current_step"] == "subscription"

        resp = await client.post(
            "/api/onboarding/wizard/subscription", headers=auth_headers, json=SUBSCRIPTION
        )
        assert resp.json()["current_step"] == "payment"

        resp = await client.post("/api/onboarding/wizard/payment", headers=auth_headers, json=PAYMENT)
        data = resp.json()
        assert data["current_step"] == "complete"
        assert data["just_completed_subscription"] is True
        assert data["redirect_to"] == "/portal"
        assert data["error"] is None
        assert data["data"]["clinic"]["name"] == CLINIC["name"]
        assert data["data"]["subscription"]["tier_code"] == "alpha"
        assert data["data"]["payment"]["transaction_id"] == "TX-42"

        resp = await client.post("/api/onboarding/wizard/complete", headers=auth_headers)
        data = resp.json()
        assert data["is_complete"] is True
        assert data["just_completed_subscription"] is False

    async def test_rejected_step_stays_put(self, client: AsyncClient, auth_headers, tiers):
        await client.post("/api/onboarding/wizard/clinic", headers=auth_headers, json=CLINIC)
        resp = await client.post(
            "/api/onboarding/wizard/subscription",
            headers=auth_headers,
            json={**SUBSCRIPTION, "tier_code": "platinum"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["current_step"] == "subscription"
        assert data["error"] == "Invalid subscription tier"

        resp = await client.post("/api/onboarding/wizard/clear-error", headers=auth_headers)
        assert resp.json()["error"] is None

    async def test_back(self, client: AsyncClient, auth_headers, tiers):
        resp = await client.post("/api/onboarding/wizard/next", headers=auth_headers)
        assert resp.json()["current_step"] == "clinic_info"

        await client.post("/api/onboarding/wizard/clinic", headers=auth_headers, json=CLINIC)
        resp = await client.post("/api/onboarding/wizard/back", headers=auth_headers)
        assert resp.json()["current_step"] == "clinic_info"

        resp = await client.post("/api/onboarding/wizard/back", headers=auth_headers)
        assert resp.json()["current_step"] == "clinic_info"

        resp = await client.post("/api/onboarding/wizard/next", headers=auth_headers)
        assert resp.json()["current_step"] == "subscription"
        assert resp.json()["can_go_forward"] is False

    async def test_deleted_clinic_resets_wizard(
        self,
        client: AsyncClient,
        auth_headers,
        tiers,
        db_session: AsyncSession,
        test_user: User,
    ):
        await client.post("/api/onboarding/wizard/clinic", headers=auth_headers, json=CLINIC)
        await client.post(
            "/api/onboarding/wizard/subscription", headers=auth_headers, json=SUBSCRIPTION
        )
        await client.post("/api/onboarding/wizard/payment", headers=auth_headers, json=PAYMENT)

        # An admin removes the clinic behind the wizard's back.
        clinic = await db_session.get(Clinic, test_user.clinic_id)
        await db_session.delete(clinic)
        test_user.clinic_id = None
        await db_session.flush()

        resp = await client.get("/api/onboarding/wizard", headers=auth_headers)
        data = resp.json()
        assert data["current_step"] == "clinic_info"
        assert data["data"] == {"clinic": None, "subscription": None, "payment": None}
        assert data["just_completed_subscription"] is False

    async def test_reset_lands_on_server_step(self, client: AsyncClient, auth_headers, tiers):
        await client.post("/api/onboarding/wizard/clinic", headers=auth_headers, json=CLINIC)
        resp = await client.post("/api/onboarding/wizard/reset", headers=auth_headers)
        data = resp.json()
        assert data["current_step"] == "subscription"
        assert data["data"]["clinic"] is None
