"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from carrier_hub.core.logging import JsonFormatter, SensitiveDataFilter


@pytest.fixture
def capture():
    """Logger wired like production (filter + JSON), writing to a buffer."""
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()


def test_redacts_carrier_credentials(capture) -> None:
    logger, stream = capture

    logger.info(
        "glovo.token",
        extra={
            "client_secret": "glovo-secret",
            "accessToken": "tok-abc",
            "x-api-key": "admin-key",
            "provider": "glovo",
        },
    )

    output = stream.getvalue()
    assert "glovo-secret" not in output
    assert "tok-abc" not in output
    assert "admin-key" not in output
    assert json.loads(output)["provider"] == "glovo"


def test_redacts_address_and_contact_text(capture) -> None:
    logger, stream = capture

    logger.info(
        "address_registry.debug",
        extra={
            "raw_address": "12 High St, Lagos",
            "phone_number": "+2348000000000",
            "address_hash": "ab12cd34",
        },
    )

    output = stream.getvalue()
    assert "High St" not in output
    assert "+2348000000000" not in output
    assert "ab12cd34" in output
    assert "[REDACTED]" in output


def test_safe_fields_pass_through(capture) -> None:
    logger, stream = capture

    logger.info(
        "http.request",
        extra={
            "request_id": "req-123",
            "route": "/v1/rate-limits/status",
            "status": 200,
            "duration_ms": 3.2,
        },
    )

    output = stream.getvalue()
    assert "req-123" in output
    assert "/v1/rate-limits/status" in output
    assert "[REDACTED]" not in output


def test_redacts_nested_dicts(capture) -> None:
    logger, stream = capture

    logger.info(
        "carrier.request",
        extra={
            "headers": {"authorization": "Bearer tok-1", "user-agent": "httpx"},
            "payload": {"address": "9 Marina Rd", "addressDetails": ""},
        },
    )

    output = stream.getvalue()
    assert "tok-1" not in output
    assert "9 Marina Rd" not in output
    assert "httpx" in output


def test_custom_keys_replace_defaults() -> None:
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "carrier.call", None, None)
    record.tracking_code = "TRK-1"
    record.address = "5 Bay Rd"

    SensitiveDataFilter(["Tracking_Code"]).filter(record)

    assert record.tracking_code == "[REDACTED]"
    assert record.address == "5 Bay Rd"


def test_configure_logging_installs_single_json_handler() -> None:
    from carrier_hub.core.config import LogSettings
    from carrier_hub.core.logging import configure_logging

    root = logging.getLogger()
    saved = (root.handlers[:], root.level)
    try:
        configure_logging(LogSettings(level="debug", format="json"))
        configure_logging(LogSettings(level="debug", format="json"))

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
