"""Tests for token handling and auth dependencies."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from smarttherapy.auth.jwt import create_access_token, decode_token
from smarttherapy.models.user import User, UserRole


@pytest.mark.auth
class TestTokens:
    def test_round_trip_claims(self):
        token = create_access_token("user-1", "clinic_admin", clinic_id="clinic-1")
        payload = decode_token(token)
        assert payload["sub"] == "user-1"
        assert payload["role"] == "clinic_admin"
        assert payload["clinic_id"] == "clinic-1"
        assert payload["type"] == "access"

    def test_no_clinic_claim_before_onboarding(self):
        payload = decode_token(create_access_token("user-1", "clinic_admin"))
        assert "clinic_id" not in payload

    def test_expired_token(self):
        token = create_access_token("user-1", "clinic_admin", expires_delta=timedelta(seconds=-1))
        assert decode_token(token) == {}

    def test_garbage_token(self):
        assert decode_token("not-a-jwt") == {}


@pytest.mark.auth
@pytest.mark.asyncio
class TestAuthDependencies:
    async def test_invalid_token(self, client: AsyncClient):
        resp = await client.get(
            "/api/onboarding/status", headers={"Authorization": "Bearer nope"}
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Invalid or expired token"

    async def test_unknown_user(self, client: AsyncClient):
        token = create_access_token("missing-user", "clinic_admin")
        resp = await client.get(
            "/api/onboarding/status", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 401

    async def test_therapist_cannot_onboard(self, client: AsyncClient, db_session, test_user: User):
        test_user.role = UserRole.THERAPIST
        await db_session.flush()
        token = create_access_token(test_user.id, test_user.role.value)

        resp = await client.get(
            "/api/onboarding/status", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 403
