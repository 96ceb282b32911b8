"""
Shared pytest fixtures for errorwatch tests.
"""

from __future__ import annotations

import logging

import pytest

from errorwatch.core.settings import AlertSettings


@pytest.fixture
def sample_alert_url() -> str:
    """Sample SMS gateway endpoint for testing."""
    return "https://sms.example.com/api/alert"


@pytest.fixture
def alert_settings(sample_alert_url: str) -> AlertSettings:
    """Settings with alerting configured and Sentry forwarding off."""
    return AlertSettings(
        alert_url=sample_alert_url,
        phone_numbers="13800000000",
        template_code="SMS_000001",
        forward_to_sentry=False,
    )


@pytest.fixture
def error_reports(caplog):
    """Return a callable listing the structured entries logged so far."""
    caplog.set_level(logging.INFO)

    def _entries() -> list[dict]:
        return [
            record.error_report
            for record in caplog.records
            if hasattr(record, "error_report")
        ]

    return _entries
