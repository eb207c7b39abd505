"""Tests for the system lock administration API."""

from __future__ import annotations

from fastapi import HTTPException
from fastapi.testclient import TestClient

from accessgate.api.deps import get_current_admin
from accessgate.app_shell.context import AccessContext
from accessgate.components import system_lock


class TestAuth:
    def test_requires_token(self, client: TestClient) -> None:
        assert client.get("/api/admin/system-lock").status_code == 401

    def test_rejects_garbage_token(self, client: TestClient) -> None:
        response = client.get(
            "/api/admin/system-lock", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401


class TestLockActions:
    def test_status_unconfigured(self, client: TestClient, admin_headers) -> None:
        response = client.get("/api/admin/system-lock", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["locked"] is False

    def test_set_records_actor(self, client, admin_headers, admin_account) -> None:
        response = client.post(
            "/api/admin/system-lock",
            json={"action": "set", "pin": "482913"},
            headers=admin_headers,
        )
        assert response.status_code == 200

        status = client.get("/api/admin/system-lock", headers=admin_headers).json()
        assert status["locked"] is True
        assert status["set_by"] == admin_account.email

    def test_set_rejects_bad_pin(self, client: TestClient, admin_headers) -> None:
        response = client.post(
            "/api/admin/system-lock",
            json={"action": "set", "pin": "12ab"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_change_requires_current_pin(self, client, admin_headers, ctx: AccessContext) -> None:
        system_lock.run_set_pin(
            system_lock.SetPinInput(pin="482913", actor="test"), ctx.store, ctx.hasher, ctx.clock
        )

        missing = client.post(
            "/api/admin/system-lock",
            json={"action": "change", "pin": "902114"},
            headers=admin_headers,
        )
        wrong = client.post(
            "/api/admin/system-lock",
            json={"action": "change", "pin": "902114", "current_pin": "111111"},
            headers=admin_headers,
        )
        ok = client.post(
            "/api/admin/system-lock",
            json={"action": "change", "pin": "902114", "current_pin": "482913"},
            headers=admin_headers,
        )

        assert missing.status_code == 400
        assert wrong.status_code == 403
        assert ok.status_code == 200

    def test_disable(self, client: TestClient, admin_headers, ctx: AccessContext) -> None:
        system_lock.run_set_pin(
            system_lock.SetPinInput(pin="482913", actor="test"), ctx.store, ctx.hasher, ctx.clock
        )

        response = client.post(
            "/api/admin/system-lock", json={"action": "disable"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert client.get("/api/admin/system-lock", headers=admin_headers).json()["locked"] is False

    def test_unknown_action(self, client: TestClient, admin_headers) -> None:
        response = client.post(
            "/api/admin/system-lock", json={"action": "explode"}, headers=admin_headers
        )
        assert response.status_code == 422


class TestOverriddenAdmin:
    def test_non_admin_forbidden(self, client: TestClient) -> None:
        def forbidden():
            raise HTTPException(status_code=403, detail="Admin access required")

        client.app.dependency_overrides[get_current_admin] = forbidden
        try:
            response = client.get("/api/admin/system-lock")
        finally:
            client.app.dependency_overrides.clear()

        assert response.status_code == 403

    def test_override_admin(self, client: TestClient, admin_account) -> None:
        client.app.dependency_overrides[get_current_admin] = lambda: admin_account
        try:
            response = client.get("/api/admin/system-lock")
        finally:
            client.app.dependency_overrides.clear()

        assert response.status_code == 200
