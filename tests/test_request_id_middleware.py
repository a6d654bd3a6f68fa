from __future__ import annotations

from fastapi.testclient import TestClient

from portfolio_api.core.app_factory import create_app


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert len(generated) > 0

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None


def test_error_envelope_carries_request_id(client: TestClient):
    resp = client.get("/v1/admin/session", headers={"X-Request-ID": "corr-42"})

    assert resp.status_code == 401
    assert resp.headers.get("X-Request-ID") == "corr-42"
    assert resp.json()["error"]["request_id"] == "corr-42"


def test_main_module_exposes_app():
    from portfolio_api.main import app

    assert app.title == "Portfolio Admin API"


def test_header_name_comes_from_app_settings(make_settings, kv_store, clock):
    base = make_settings()
    settings = base.model_copy(
        update={"log": base.log.model_copy(update={"request_id_header": "X-Correlation-ID"})}
    )
    app = create_app(settings, kv_store=kv_store, clock=clock)

    with TestClient(app) as client:
        resp = client.get("/v1/admin/session", headers={"X-Correlation-ID": "corr-7"})

    assert resp.headers.get("X-Correlation-ID") == "corr-7"
    assert "X-Request-ID" not in resp.headers
    assert resp.json()["error"]["request_id"] == "corr-7"
