"""Tests for the maintenance API and the edge gate in front of it."""

from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

OPS_EMAIL = "ops@capsera.com"
BYPASS_TOKEN = "static-bypass-token-0123456789"


def enable(client: TestClient, headers: dict[str, str], **fields) -> dict:
    response = client.put("/api/maintenance", json={"enabled": True, **fields}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


class TestStatus:
    def test_public_status_defaults(self, client: TestClient) -> None:
        response = client.get("/api/maintenance/status")

        assert response.status_code == 200
        data = response.json()
        assert data["enabled"] is False
        assert "maintenance" in data["message"]

    def test_status_reflects_update(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers, message="Back soon", estimated_time="1 hour")

        data = client.get("/api/maintenance/status").json()
        assert data == {"enabled": True, "message": "Back soon", "estimated_time": "1 hour"}


class TestAdminConfig:
    def test_requires_admin(self, client: TestClient) -> None:
        assert client.get("/api/maintenance").status_code == 401
        assert client.put("/api/maintenance", json={"enabled": True}).status_code == 401

    def test_baseline_merged_into_config(self, client: TestClient, admin_headers) -> None:
        data = client.get("/api/maintenance", headers=admin_headers).json()

        assert "127.0.0.1" in data["allowed_ips"]
        assert data["enabled"] is False

    def test_update_normalizes_lists(self, client, admin_headers, admin_account) -> None:
        data = enable(client, admin_headers, allowed_emails=["  OPS@Capsera.com "])

        assert OPS_EMAIL in data["allowed_emails"]
        assert data["updated_by"] == admin_account.email

    def test_update_rejects_invalid_entries(self, client: TestClient, admin_headers) -> None:
        response = client.put(
            "/api/maintenance",
            json={"allowed_ips": ["999.1.1.1"], "allowed_emails": ["nope"]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["detail"]}
        assert fields == {"allowed_ips", "allowed_emails"}

    def test_update_rejects_long_message(self, client: TestClient, admin_headers) -> None:
        response = client.put(
            "/api/maintenance", json={"message": "x" * 501}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_clear(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers)

        response = client.delete("/api/maintenance", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["enabled"] is False


class TestGate:
    def test_off_passes_through(self, client: TestClient) -> None:
        assert client.get("/api/widgets").status_code == 404

    def test_api_request_blocked_with_json(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers, message="Upgrading", estimated_time="10 minutes")

        response = client.get("/api/widgets")

        assert response.status_code == 503
        assert response.json() == {
            "detail": "Upgrading",
            "maintenance": True,
            "estimated_time": "10 minutes",
        }

    def test_page_request_redirected(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers)

        response = client.get("/pricing", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/maintenance"

    def test_maintenance_page_renders(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers, message="<b>Back soon</b>")

        response = client.get("/maintenance")

        assert response.status_code == 503
        assert "&lt;b&gt;Back soon&lt;/b&gt;" in response.text

    def test_exempt_paths_stay_open(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers)

        assert client.get("/health").status_code == 200
        assert client.get("/api/maintenance/status").status_code == 200
        assert client.get("/api/admin/setup").status_code == 200

    def test_admin_needs_allowlisted_email(self, client, admin_headers, admin_account) -> None:
        enable(client, admin_headers)
        assert client.get("/api/widgets", headers=admin_headers).status_code == 503

        enable(client, admin_headers, allowed_emails=[admin_account.email])
        assert client.get("/api/widgets", headers=admin_headers).status_code == 404


class TestForwardedHeaders:
    def test_spoofed_loopback_does_not_pass(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers)

        response = client.get("/api/widgets", headers={"X-Forwarded-For": "127.0.0.1"})

        assert response.status_code == 503

    def test_spoofed_header_does_not_match_allowlist(self, client, admin_headers) -> None:
        enable(client, admin_headers, allowed_ips=["203.0.113.7"])

        response = client.get("/api/widgets", headers={"X-Real-IP": "203.0.113.7"})

        assert response.status_code == 503


class TestForwardedHeadersFromTrustedProxy:
    @pytest.fixture
    def settings(self, settings):
        return replace(settings, trusted_proxies=("testclient",))

    def test_allowlisted_ip_passes(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers, allowed_ips=["203.0.113.7"])

        response = client.get("/api/widgets", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

        assert response.status_code == 404

    def test_other_forwarded_ip_blocked(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers, allowed_ips=["203.0.113.7"])

        response = client.get("/api/widgets", headers={"X-Forwarded-For": "9.9.9.9"})

        assert response.status_code == 503


class TestEmergencyAccess:
    @pytest.fixture
    def maintenance_on(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers, allowed_emails=[OPS_EMAIL])

    def test_token_mailed_not_returned(self, client, maintenance_on, email) -> None:
        response = client.post("/api/maintenance/emergency-access", json={"email": OPS_EMAIL})

        assert response.status_code == 200
        assert response.json()["token"] is None
        assert email.get_emails_to(OPS_EMAIL)

    def test_not_allowlisted(self, client: TestClient, maintenance_on) -> None:
        response = client.post(
            "/api/maintenance/emergency-access", json={"email": "stranger@example.com"}
        )
        assert response.status_code == 403

    def test_redeem_sets_bypass_cookie(self, client, maintenance_on, read_token) -> None:
        client.post("/api/maintenance/emergency-access", json={"email": OPS_EMAIL})
        assert client.get("/api/widgets").status_code == 503

        response = client.post(
            "/api/maintenance/emergency-access/redeem", json={"token": read_token(OPS_EMAIL)}
        )

        assert response.status_code == 200
        assert response.json()["identity"] == OPS_EMAIL
        assert "maintenance_bypass" in response.cookies
        assert client.get("/api/widgets").status_code == 404

    def test_redeem_twice_is_generic(self, client, maintenance_on, read_token) -> None:
        client.post("/api/maintenance/emergency-access", json={"email": OPS_EMAIL})
        token = read_token(OPS_EMAIL)
        client.post("/api/maintenance/emergency-access/redeem", json={"token": token})

        replay = client.post("/api/maintenance/emergency-access/redeem", json={"token": token})
        unknown = client.post("/api/maintenance/emergency-access/redeem", json={"token": "x" * 43})

        assert replay.status_code == unknown.status_code == 400
        assert replay.json() == unknown.json() == {"detail": "Invalid or expired token"}

    def test_stats(self, client, maintenance_on, admin_headers, read_token) -> None:
        client.post("/api/maintenance/emergency-access", json={"email": OPS_EMAIL})
        client.post("/api/maintenance/emergency-access", json={"email": OPS_EMAIL})
        client.post(
            "/api/maintenance/emergency-access/redeem", json={"token": read_token(OPS_EMAIL)}
        )

        response = client.get("/api/maintenance/emergency-access/stats", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"total": 2, "active": 1, "used": 1, "expired": 0}


class TestStaticBypass:
    def test_not_configured(self, client: TestClient) -> None:
        response = client.post("/api/maintenance/bypass", json={"token": BYPASS_TOKEN})
        assert response.status_code == 404


class TestStaticBypassConfigured:
    @pytest.fixture
    def settings(self, settings):
        return replace(settings, bypass_token=BYPASS_TOKEN)

    def test_wrong_token(self, client: TestClient) -> None:
        response = client.post("/api/maintenance/bypass", json={"token": "wrong"})
        assert response.status_code == 403

    def test_right_token_passes_gate(self, client: TestClient, admin_headers) -> None:
        enable(client, admin_headers)

        response = client.post("/api/maintenance/bypass", json={"token": BYPASS_TOKEN})

        assert response.status_code == 200
        assert client.get("/api/widgets").status_code == 404
