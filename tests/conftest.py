"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any carrier_hub import so the global
settings object is built for tests: an in-memory SQLite address store, known
admin API keys and geocoding disabled.
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("ADDRESS_BOOK_DATABASE_URL", "sqlite://")
os.environ.setdefault("GEOCODING_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from carrier_hub.adapters.registrar.base import AbstractAddressRegistrar


class FakeClock:
    """Deterministic UTC clock for registry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class FakeRegistrar(AbstractAddressRegistrar):
    """Registrar double that records calls and can be scripted to fail."""

    def __init__(self, *, delay: float = 0.0) -> None:
        self.calls: list[tuple[str, str]] = []
        self.delay = delay
        self.error: BaseException | None = None
        self._next_id = 0

    async def register(self, canonical_address, default_contact, *, coordinates=None):
        self.calls.append((canonical_address, default_contact))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self._next_id += 1
        return f"ext-{self._next_id}"


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_registrar() -> FakeRegistrar:
    return FakeRegistrar()


@pytest.fixture
def quota_clock() -> Mock:
    """Monotonic-style clock in seconds for quota tests."""
    return Mock(return_value=1000.0)


@pytest.fixture
def valid_api_key_headers() -> dict[str, str]:
    return {"X-API-Key": "test-api-key-123"}
