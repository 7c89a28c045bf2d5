from __future__ import annotations

from fastapi.testclient import TestClient

from carrier_hub.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "carrier-req-42"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_error_responses_carry_same_request_id():
    resp = client.get(
        "/v1/rate-limits/fez/status",
        headers={"X-Request-ID": "req-err-1", "X-API-Key": "test-api-key-123"},
    )
    assert resp.status_code == 200

    resp = client.patch(
        "/v1/rate-limits/fez/config",
        json={"max_requests": 0, "window_ms": 1000},
        headers={"X-Request-ID": "req-err-2", "X-API-Key": "test-api-key-123"},
    )

    assert resp.status_code == 400
    assert resp.headers["X-Request-ID"] == "req-err-2"
    assert resp.json()["error"]["request_id"] == "req-err-2"
