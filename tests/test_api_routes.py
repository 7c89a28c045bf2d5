"""HTTP tests for the rate-limit and address-book routes."""

import pytest
from fastapi.testclient import TestClient

from carrier_hub.adapters.address_store.in_memory import InMemoryAddressStore
from carrier_hub.adapters.rate_limit.in_memory import InMemoryProviderQuota
from carrier_hub.adapters.registrar.base import RegistrarConflict
from carrier_hub.core.app_factory import create_app
from carrier_hub.core.errors import QuotaExceededError, RegistrarUnavailable
from carrier_hub.services.address_registry import AddressRegistry


@pytest.fixture
def quota(quota_clock) -> InMemoryProviderQuota:
    return InMemoryProviderQuota(
        default_max_requests=60,
        default_window_ms=60_000,
        overrides={"fez": (60, 60_000), "dhl": (50, 60_000)},
        clock=quota_clock,
    )


@pytest.fixture
def registry(fake_registrar, fake_clock) -> AddressRegistry:
    return AddressRegistry(
        store=InMemoryAddressStore(),
        registrar=fake_registrar,
        default_contact="+2340000000000",
        clock=fake_clock,
    )


@pytest.fixture
def client(quota, registry) -> TestClient:
    app = create_app(provider_quota=quota, address_registry=registry)
    return TestClient(app)


class TestRateLimitRoutes:
    def test_requires_api_key(self, client: TestClient) -> None:
        assert client.get("/v1/rate-limits/status").status_code == 403
        response = client.get("/v1/rate-limits/status", headers={"X-API-Key": "nope"})
        assert response.status_code == 403

    def test_all_providers_status(self, client: TestClient, quota, valid_api_key_headers) -> None:
        quota.admit("fez")

        response = client.get("/v1/rate-limits/status", headers=valid_api_key_headers)

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"dhl", "fez"}
        assert data["fez"]["remaining_requests"] == 59
        assert data["dhl"]["remaining_requests"] == 50

    def test_provider_status_does_not_consume(self, client: TestClient, quota, valid_api_key_headers) -> None:
        quota.admit("gig")
        quota.admit("gig")

        for _ in range(3):
            response = client.get("/v1/rate-limits/GIG/status", headers=valid_api_key_headers)

        body = response.json()
        assert body["provider"] == "gig"
        assert body["remaining_requests"] == 58
        assert body["time_until_reset_ms"] == 60_000
        assert body["time_until_reset_seconds"] == 60

    def test_update_config_restarts_window(self, client: TestClient, quota, quota_clock, valid_api_key_headers) -> None:
        quota.admit("acme")
        quota_clock.return_value = 1000.25

        response = client.patch(
            "/v1/rate-limits/acme/config",
            json={"max_requests": 2, "window_ms": 1500},
            headers=valid_api_key_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Rate limit configuration updated for acme"
        assert body["status"]["max_requests"] == 2
        assert body["status"]["remaining_requests"] == 2
        assert body["status"]["time_until_reset_seconds"] == 2

    @pytest.mark.parametrize("payload", [{"max_requests": 0, "window_ms": 1000}, {"max_requests": 5, "window_ms": -1}])
    def test_invalid_config_is_400(self, client: TestClient, quota, payload, valid_api_key_headers) -> None:
        response = client.patch("/v1/rate-limits/fez/config", json=payload, headers=valid_api_key_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "quota_config_invalid"
        assert quota.snapshot("fez").max_requests == 60


class TestAddressBookRoutes:
    def test_resolve_registers_once(self, client: TestClient, fake_registrar, valid_api_key_headers) -> None:
        first = client.post("/v1/address-book/resolve", json={"address": "12 High St"}, headers=valid_api_key_headers)
        second = client.post(
            "/v1/address-book/resolve", json={"address": " 12 high  ST"}, headers=valid_api_key_headers
        )

        assert first.status_code == second.status_code == 200
        assert first.json()["external_id"] == second.json()["external_id"] == "ext-1"
        assert first.json()["created"] is True
        assert second.json()["created"] is False
        assert len(fake_registrar.calls) == 1

    def test_resolve_empty_address_is_400(self, client: TestClient, valid_api_key_headers) -> None:
        response = client.post("/v1/address-book/resolve", json={"address": "   "}, headers=valid_api_key_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "address_empty"

    def test_unresolved_conflict_is_409(self, client: TestClient, fake_registrar, valid_api_key_headers) -> None:
        fake_registrar.error = RegistrarConflict(None)

        response = client.post("/v1/address-book/resolve", json={"address": "12 High St"}, headers=valid_api_key_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "address_owned_elsewhere"

    def test_registrar_outage_is_503(self, client: TestClient, fake_registrar, valid_api_key_headers) -> None:
        fake_registrar.error = RegistrarUnavailable(code="glovo_unavailable", message="down")

        response = client.post("/v1/address-book/resolve", json={"address": "12 High St"}, headers=valid_api_key_headers)

        assert response.status_code == 503

    def test_carrier_quota_exhaustion_is_429(self, client: TestClient, fake_registrar, valid_api_key_headers) -> None:
        fake_registrar.error = QuotaExceededError(
            code="carrier_quota_exceeded",
            message="glovo rate limit exceeded",
            details={"provider": "glovo", "retry_after_ms": 4200},
        )

        response = client.post("/v1/address-book/resolve", json={"address": "12 High St"}, headers=valid_api_key_headers)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "5"

    def test_lookup_hit_and_miss(self, client: TestClient, valid_api_key_headers) -> None:
        miss = client.get("/v1/address-book/lookup", params={"address": "1 A St"}, headers=valid_api_key_headers)

        assert miss.status_code == 404
        error = miss.json()["error"]
        assert error["code"] == "address_not_cached"
        assert "request_id" in error

        client.post("/v1/address-book/resolve", json={"address": "1 A St"}, headers=valid_api_key_headers)
        response = client.get("/v1/address-book/lookup", params={"address": "1 a st"}, headers=valid_api_key_headers)

        assert response.status_code == 200
        assert response.json() == {"external_id": "ext-1"}

    def test_lookup_by_hash(self, client: TestClient, valid_api_key_headers) -> None:
        resolved = client.post(
            "/v1/address-book/resolve", json={"address": "1 A St"}, headers=valid_api_key_headers
        ).json()

        hit = client.get(f"/v1/address-book/lookup/{resolved['address_hash']}", headers=valid_api_key_headers)
        miss = client.get(f"/v1/address-book/lookup/{'0' * 64}", headers=valid_api_key_headers)

        assert hit.status_code == 200
        assert hit.json() == {"external_id": "ext-1"}
        assert miss.status_code == 404
        assert miss.json()["error"]["code"] == "address_not_cached"
        assert miss.json()["error"]["details"] == {"address_hash": "0" * 16}

    def test_stats(self, client: TestClient, valid_api_key_headers) -> None:
        for address in ("1 A St", "1 A St", "2 B St"):
            client.post("/v1/address-book/resolve", json={"address": address}, headers=valid_api_key_headers)

        response = client.get("/v1/address-book/stats", headers=valid_api_key_headers)

        assert response.json() == {"count": 2, "total_usage": 3, "average_usage": 1.5, "recent_additions": 2}

    def test_cleanup(self, client: TestClient, fake_clock, valid_api_key_headers) -> None:
        client.post("/v1/address-book/resolve", json={"address": "1 A St"}, headers=valid_api_key_headers)
        fake_clock.advance(days=91)

        kept = client.post("/v1/address-book/cleanup", params={"retention_days": 120}, headers=valid_api_key_headers)
        removed = client.post("/v1/address-book/cleanup", headers=valid_api_key_headers)

        assert kept.json() == {"retention_days": 120, "deleted": 0}
        assert removed.json() == {"retention_days": 90, "deleted": 1}

    def test_cleanup_rejects_negative_retention(self, client: TestClient, valid_api_key_headers) -> None:
        response = client.post(
            "/v1/address-book/cleanup", params={"retention_days": -5}, headers=valid_api_key_headers
        )

        assert response.status_code == 422


def test_health_is_open(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "providers": ["dhl", "fez"]}
