"""
tests.test_observability
"""

from __future__ import annotations

import logging

from clinic_portal.observability.logging import _redact_secrets, configure_logging


def test_credentials_are_redacted_from_log_events() -> None:
    event = {
        "event": "auth_token_request",
        "access_token": "eyJ...",
        "refresh_token": "r-1",
        "password": "secret",
        "principal_id": "u1",
    }

    out = _redact_secrets(None, "info", event)

    assert out["access_token"] == out["refresh_token"] == out["password"] == "***"
    assert out["principal_id"] == "u1"
    assert out["event"] == "auth_token_request"


def test_configure_logging_quiets_http_client() -> None:
    configure_logging(service_name="clinic-portal-test", level="DEBUG", json_logs=False)
    try:
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        configure_logging(service_name="clinic-portal-test", level="INFO")
