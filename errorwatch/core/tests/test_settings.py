"""Tests for environment-driven alert settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from errorwatch.core import settings as settings_module
from errorwatch.core.settings import AlertSettings, load_settings


def test_load_settings_defaults() -> None:
    """An empty environment should give the default settings."""
    settings = load_settings({})

    assert settings == AlertSettings()
    assert settings.alert_url is None
    assert settings.template_code == "SMS_163055819"
    assert settings.alert_name == "监控"
    assert settings.forward_to_sentry is True
    assert settings.max_cause_depth == 1000


def test_load_settings_reads_environment() -> None:
    """Every ERRORWATCH_ variable should map onto its field."""
    settings = load_settings(
        {
            "ERRORWATCH_ALERT_URL": "https://sms.example.com/send",
            "ERRORWATCH_ALERT_PHONE_NUMBERS": " 13800000000 ",
            "ERRORWATCH_ALERT_TEMPLATE_CODE": "SMS_1",
            "ERRORWATCH_ALERT_TIMEOUT_SECONDS": "2.5",
            "ERRORWATCH_FORWARD_TO_SENTRY": "false",
            "ERRORWATCH_MAX_CAUSE_DEPTH": "50",
        }
    )

    assert settings.alert_url == "https://sms.example.com/send"
    assert settings.phone_numbers == "13800000000"
    assert settings.template_code == "SMS_1"
    assert settings.timeout_seconds == 2.5
    assert settings.forward_to_sentry is False
    assert settings.max_cause_depth == 50


def test_load_settings_ignores_blank_values() -> None:
    """Blank variables should be treated as unset."""
    settings = load_settings({"ERRORWATCH_ALERT_URL": "   "})

    assert settings.alert_url is None


@pytest.mark.parametrize(
    "name, value",
    [
        ("ERRORWATCH_MAX_CAUSE_DEPTH", "0"),
        ("ERRORWATCH_ALERT_TIMEOUT_SECONDS", "-1"),
        ("ERRORWATCH_FORWARD_TO_SENTRY", "maybe"),
    ],
)
def test_load_settings_rejects_invalid_values(name: str, value: str) -> None:
    """Invalid values should raise a ValidationError."""
    with pytest.raises(ValidationError):
        load_settings({name: value})


def test_env_vars_documents_every_variable() -> None:
    """ENV_VARS should list every variable load_settings reads."""
    assert set(settings_module.ENV_VARS) == set(settings_module._ENV_FIELDS)  # type: ignore[attr-defined]


def test_load_settings_defaults_to_os_environ(monkeypatch) -> None:
    """load_settings should read os.environ when no mapping is passed."""
    monkeypatch.setenv("ERRORWATCH_ALERT_NAME", "ops")

    assert load_settings().alert_name == "ops"
