"""End-to-end tests for the admin auth routes through the FastAPI app."""

import pytest
from fastapi.testclient import TestClient

from portfolio_api.core.app_factory import create_app
from portfolio_api.services.session_service import SESSION_KEY_PREFIX, session_key


ADMIN_PASSWORD = "correct-horse-battery"

LOGIN_URL = "/v1/admin/login"
SESSION_URL = "/v1/admin/session"
LOGOUT_URL = "/v1/admin/logout"


def _login(client: TestClient, password: str = ADMIN_PASSWORD, ip: str | None = None):
    headers = {"X-Forwarded-For": ip} if ip else {}
    return client.post(LOGIN_URL, json={"password": password}, headers=headers)


class TestLogin:
    def test_success_returns_token(self, client: TestClient, kv_store) -> None:
        response = _login(client)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["token"]) == 64
        assert session_key(body["token"]) in kv_store

    def test_session_record_keeps_forwarded_ip(self, client: TestClient, kv_store) -> None:
        token = _login(client, ip="203.0.113.7, 10.0.0.1").json()["token"]

        stored = kv_store._data[session_key(token)]
        assert stored["ip"] == "203.0.113.7"

    def test_wrong_password(self, client: TestClient) -> None:
        response = _login(client, password="wrong")

        assert response.status_code == 401
        error = response.json()["error"]
        assert error["code"] == "invalid_credentials"
        assert error["message"] == "Invalid credentials"
        assert "request_id" in error

    def test_missing_password(self, client: TestClient) -> None:
        response = client.post(LOGIN_URL, json={})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "password_required"

    def test_lockout_after_five_failures(self, client: TestClient, clock) -> None:
        ip = "1.2.3.4"
        for _ in range(5):
            assert _login(client, password="wrong", ip=ip).status_code == 401

        response = _login(client, ip=ip)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "900"
        error = response.json()["error"]
        assert error["code"] == "too_many_login_attempts"
        assert error["details"]["locked_until"] == int((clock.current + 900) * 1000)

        # Other IPs are unaffected
        assert _login(client, ip="5.6.7.8").status_code == 200

        clock.advance(901)
        assert _login(client, ip=ip).status_code == 200

    def test_login_is_not_api_rate_limited(self, make_settings, kv_store, clock) -> None:
        app = create_app(make_settings(api_rate_limit_requests=1), kv_store=kv_store, clock=clock)

        with TestClient(app) as client:
            assert _login(client).status_code == 200
            assert _login(client).status_code == 200

    def test_misconfigured_server(self, make_settings, kv_store, clock) -> None:
        app = create_app(make_settings(admin_password=None), kv_store=kv_store, clock=clock)

        with TestClient(app) as client:
            response = _login(client)

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "server_misconfigured"
        assert "details" not in error


class TestUntrustedForwardingHeaders:
    """Clients that connect directly cannot choose their IP with headers."""

    @pytest.fixture
    def direct_client(self, make_settings, kv_store, clock):
        app = create_app(make_settings(trusted_proxies="127.0.0.1,::1"), kv_store=kv_store, clock=clock)
        with TestClient(app) as test_client:
            yield test_client

    def test_rotating_forwarded_for_does_not_escape_lockout(self, direct_client: TestClient) -> None:
        statuses = [
            _login(direct_client, password="wrong", ip=f"198.51.100.{n}").status_code for n in range(50)
        ]

        assert statuses[:5] == [401] * 5
        assert set(statuses[5:]) == {429}

    def test_rotating_real_ip_does_not_escape_api_limit(self, make_settings, kv_store, clock) -> None:
        settings = make_settings(trusted_proxies="", api_rate_limit_requests=2)
        app = create_app(settings, kv_store=kv_store, clock=clock)

        with TestClient(app) as client:
            statuses = [
                client.get(SESSION_URL, headers={"X-Real-IP": f"10.0.0.{n}"}).status_code for n in range(4)
            ]

        assert statuses == [401, 401, 429, 429]

    def test_session_records_peer_address(self, direct_client: TestClient, kv_store) -> None:
        token = _login(direct_client, ip="203.0.113.7").json()["token"]

        assert kv_store._data[session_key(token)]["ip"] == "testclient"


class TestSessionStatus:
    def test_valid_session(self, client: TestClient) -> None:
        token = _login(client).json()["token"]

        response = client.get(SESSION_URL, headers={"X-Admin-Token": token})

        assert response.status_code == 200
        assert response.json() == {"valid": True}

    def test_bearer_token_accepted(self, client: TestClient) -> None:
        token = _login(client).json()["token"]

        response = client.get(SESSION_URL, headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"X-Admin-Token": "not-a-session"},
            {"X-Admin-Token": "f" * 64},
            {"Authorization": "Bearer some.jwt.value"},
        ],
    )
    def test_rejected_with_generic_401(self, client: TestClient, headers: dict) -> None:
        response = client.get(SESSION_URL, headers=headers)

        assert response.status_code == 401
        error = response.json()["error"]
        assert error == {
            "code": "unauthorized",
            "message": "Unauthorized",
            "request_id": error["request_id"],
        }

    def test_expired_session_rejected_and_deleted(self, client: TestClient, kv_store, clock) -> None:
        token = _login(client).json()["token"]

        clock.advance(24 * 60 * 60 + 1)
        response = client.get(SESSION_URL, headers={"X-Admin-Token": token})

        assert response.status_code == 401
        assert session_key(token) not in kv_store


class TestLogout:
    def test_logout_revokes_token(self, client: TestClient, kv_store) -> None:
        token = _login(client).json()["token"]
        headers = {"X-Admin-Token": token}

        response = client.post(LOGOUT_URL, headers=headers)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert session_key(token) not in kv_store
        assert client.get(SESSION_URL, headers=headers).status_code == 401

    def test_logout_only_revokes_presented_session(self, client: TestClient, kv_store) -> None:
        first = _login(client).json()["token"]
        second = _login(client).json()["token"]

        client.post(LOGOUT_URL, headers={"X-Admin-Token": first})

        remaining = [key for key in kv_store._data if key.startswith(SESSION_KEY_PREFIX)]
        assert remaining == [session_key(second)]

    def test_logout_requires_session(self, client: TestClient) -> None:
        assert client.post(LOGOUT_URL).status_code == 401


class TestApiRateLimit:
    def test_default_budget_is_100_per_window(self, client: TestClient, clock) -> None:
        headers = {"X-Forwarded-For": "9.9.9.9"}
        statuses = [client.get(SESSION_URL, headers=headers).status_code for _ in range(100)]
        assert set(statuses) == {401}

        blocked = client.get(SESSION_URL, headers=headers)
        assert blocked.status_code == 429
        assert blocked.headers["Retry-After"] == "60"
        assert blocked.headers["X-RateLimit-Limit"] == "100"
        assert blocked.headers["X-RateLimit-Remaining"] == "0"
        assert blocked.json()["error"]["code"] == "rate_limit_exceeded"

        clock.advance(60)
        assert client.get(SESSION_URL, headers=headers).status_code == 401

    def test_limit_is_per_ip(self, make_settings, kv_store, clock) -> None:
        app = create_app(make_settings(api_rate_limit_requests=2), kv_store=kv_store, clock=clock)

        with TestClient(app) as client:
            for _ in range(2):
                client.get(SESSION_URL, headers={"X-Real-IP": "10.0.0.1"})
            assert client.get(SESSION_URL, headers={"X-Real-IP": "10.0.0.1"}).status_code == 429
            assert client.get(SESSION_URL, headers={"X-Real-IP": "10.0.0.2"}).status_code == 401

    def test_headers_can_be_disabled(self, make_settings, kv_store, clock) -> None:
        settings = make_settings(api_rate_limit_requests=1, rate_limit_include_headers=False)
        app = create_app(settings, kv_store=kv_store, clock=clock)

        with TestClient(app) as client:
            client.get(SESSION_URL)
            response = client.get(SESSION_URL)

        assert response.status_code == 429
        assert "Retry-After" not in response.headers

    def test_disabled_limiter(self, make_settings, kv_store, clock) -> None:
        settings = make_settings(api_rate_limit_requests=1, api_rate_limit_enabled=False)
        app = create_app(settings, kv_store=kv_store, clock=clock)

        with TestClient(app) as client:
            statuses = {client.get(SESSION_URL).status_code for _ in range(5)}

        assert statuses == {401}


class TestHealthAndHeaders:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.parametrize("path", ["/health", SESSION_URL])
    def test_security_headers_present(self, client: TestClient, path: str) -> None:
        response = client.get(path)

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Strict-Transport-Security"].startswith("max-age=")
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
