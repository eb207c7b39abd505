"""Tests for the administrator setup API."""

from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from accessgate.app_shell.context import AccessContext
from accessgate.components import system_lock

PIN = "482913"
EMAIL = "owner@capsera.com"
PASSWORD = "correct-horse-battery"


@pytest.fixture
def locked(ctx: AccessContext) -> AccessContext:
    """Context with the system lock PIN configured."""
    result = system_lock.run_set_pin(
        system_lock.SetPinInput(pin=PIN, actor="test"), ctx.store, ctx.hasher, ctx.clock
    )
    assert result.success
    return ctx


class TestSetupStatus:
    def test_fresh_install(self, client: TestClient) -> None:
        response = client.get("/api/admin/setup")

        assert response.status_code == 200
        assert response.json() == {"admin_exists": False, "lock_configured": False}

    def test_lock_configured(self, client: TestClient, locked: AccessContext) -> None:
        assert client.get("/api/admin/setup").json()["lock_configured"] is True


class TestVerifyPin:
    def test_not_configured_is_conflict(self, client: TestClient) -> None:
        response = client.post("/api/admin/setup/verify-pin", json={"pin": PIN})
        assert response.status_code == 409

    def test_wrong_pin(self, client: TestClient, locked: AccessContext) -> None:
        response = client.post("/api/admin/setup/verify-pin", json={"pin": "000000"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid PIN"

    def test_correct_pin(self, client: TestClient, locked: AccessContext) -> None:
        response = client.post("/api/admin/setup/verify-pin", json={"pin": PIN})
        assert response.status_code == 200
        assert response.json() == {"verified": True}


class TestRequestCode:
    def test_wrong_pin_sends_nothing(self, client, locked, email) -> None:
        response = client.post(
            "/api/admin/setup/request-code", json={"pin": "111111", "email": EMAIL}
        )
        assert response.status_code == 401
        assert email.email_count == 0

    def test_invalid_email(self, client: TestClient, locked: AccessContext) -> None:
        response = client.post(
            "/api/admin/setup/request-code", json={"pin": PIN, "email": "not-an-email"}
        )
        assert response.status_code == 400

    def test_code_is_mailed_not_returned(self, client, locked, email) -> None:
        response = client.post("/api/admin/setup/request-code", json={"pin": PIN, "email": EMAIL})

        assert response.status_code == 200
        data = response.json()
        assert data["delivered"] is True
        assert data["code"] is None
        assert email.get_emails_to(EMAIL)

    def test_reissue_throttled(self, client: TestClient, locked: AccessContext) -> None:
        body = {"pin": PIN, "email": EMAIL}
        assert client.post("/api/admin/setup/request-code", json=body).status_code == 200

        response = client.post("/api/admin/setup/request-code", json=body)

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0

    def test_reissue_after_interval(self, client, locked, time_port) -> None:
        body = {"pin": PIN, "email": EMAIL}
        client.post("/api/admin/setup/request-code", json=body)
        time_port.advance(locked.rules.otp.min_reissue_seconds)

        assert client.post("/api/admin/setup/request-code", json=body).status_code == 200


class TestRequestCodeDebug:
    @pytest.fixture
    def settings(self, settings):
        return replace(settings, debug_codes=True)

    def test_code_returned_when_debug_on(self, client, locked, read_code) -> None:
        response = client.post("/api/admin/setup/request-code", json={"pin": PIN, "email": EMAIL})

        assert response.status_code == 200
        assert response.json()["code"] == read_code(EMAIL)


class TestCompleteSetup:
    def _request(self, client: TestClient) -> None:
        response = client.post("/api/admin/setup/request-code", json={"pin": PIN, "email": EMAIL})
        assert response.status_code == 200

    def test_creates_admin(self, client, locked, read_code) -> None:
        self._request(client)

        response = client.post(
            "/api/admin/setup/complete",
            json={"email": EMAIL, "code": read_code(EMAIL), "password": PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == EMAIL
        assert data["user"]["roles"] == ["admin"]
        assert data["access_token"]
        assert "access_token" in response.cookies
        assert client.get("/api/admin/setup").json()["admin_exists"] is True

    def test_wrong_code_is_generic(self, client: TestClient, locked: AccessContext) -> None:
        self._request(client)

        response = client.post(
            "/api/admin/setup/complete",
            json={"email": EMAIL, "code": "000000", "password": PASSWORD},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired code"

    def test_code_single_use(self, client, locked, read_code) -> None:
        self._request(client)
        code = read_code(EMAIL)
        body = {"email": EMAIL, "code": code, "password": PASSWORD}
        assert client.post("/api/admin/setup/complete", json=body).status_code == 200

        replay = client.post("/api/admin/setup/complete", json=body)

        assert replay.status_code == 400
        assert replay.json()["detail"] == "Invalid or expired code"

    def test_expired_code_is_generic(self, client, locked, time_port, read_code) -> None:
        self._request(client)
        time_port.advance(locked.rules.otp.ttl_seconds + 1)

        response = client.post(
            "/api/admin/setup/complete",
            json={"email": EMAIL, "code": read_code(EMAIL), "password": PASSWORD},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired code"

    def test_short_password_keeps_code(self, client, locked, read_code) -> None:
        self._request(client)
        code = read_code(EMAIL)

        short = client.post(
            "/api/admin/setup/complete", json={"email": EMAIL, "code": code, "password": "short"}
        )
        assert short.status_code == 400
        assert "at least" in short.json()["detail"]

        retry = client.post(
            "/api/admin/setup/complete", json={"email": EMAIL, "code": code, "password": PASSWORD}
        )
        assert retry.status_code == 200
