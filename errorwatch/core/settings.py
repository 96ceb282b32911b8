"""
Alert configuration for the error reporter.

Settings come from environment variables so that the reporter can be dropped
into any process without code changes. Every field has a default; without an
alert URL the urgent path still runs but records a transport failure.
"""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, PositiveInt


logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_CODE = "SMS_163055819"
DEFAULT_ALERT_NAME = "监控"

# Environment variables read by load_settings()
ENV_VARS = {
    "ERRORWATCH_ALERT_URL": {
        "required": False,
        "description": "Alert gateway endpoint for urgent reports (HTTP GET)",
    },
    "ERRORWATCH_ALERT_PHONE_NUMBERS": {
        "required": False,
        "description": "Recipient phone number(s), comma separated",
    },
    "ERRORWATCH_ALERT_TEMPLATE_CODE": {
        "required": False,
        "description": "SMS template identifier passed as templateCode",
    },
    "ERRORWATCH_ALERT_NAME": {
        "required": False,
        "description": "Sender name passed as the name parameter",
    },
    "ERRORWATCH_ALERT_TIMEOUT_SECONDS": {
        "required": False,
        "description": "HTTP timeout for the alert request",
    },
    "ERRORWATCH_FORWARD_TO_SENTRY": {
        "required": False,
        "description": "Also send reported exceptions to Sentry (true/false)",
    },
    "ERRORWATCH_MAX_CAUSE_DEPTH": {
        "required": False,
        "description": "Longest cause chain accepted before giving up",
    },
}

_ENV_FIELDS = {
    "ERRORWATCH_ALERT_URL": "alert_url",
    "ERRORWATCH_ALERT_PHONE_NUMBERS": "phone_numbers",
    "ERRORWATCH_ALERT_TEMPLATE_CODE": "template_code",
    "ERRORWATCH_ALERT_NAME": "alert_name",
    "ERRORWATCH_ALERT_TIMEOUT_SECONDS": "timeout_seconds",
    "ERRORWATCH_FORWARD_TO_SENTRY": "forward_to_sentry",
    "ERRORWATCH_MAX_CAUSE_DEPTH": "max_cause_depth",
}


class AlertSettings(BaseModel):
    alert_url: str | None = None
    phone_numbers: str = ""
    template_code: str = DEFAULT_TEMPLATE_CODE
    alert_name: str = DEFAULT_ALERT_NAME
    level: int = 1
    timeout_seconds: float = Field(default=10.0, gt=0)
    forward_to_sentry: bool = True
    max_cause_depth: PositiveInt = 1000


def load_settings(environ: dict[str, str] | None = None) -> AlertSettings:
    """
    Build AlertSettings from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Validated settings instance

    Raises:
        ValidationError: If a variable holds a value of the wrong type
    """
    env = os.environ if environ is None else environ

    values = {}
    for env_name, field_name in _ENV_FIELDS.items():
        raw = env.get(env_name)
        if raw is None or raw.strip() == "":
            continue
        values[field_name] = raw.strip()

    settings = AlertSettings.model_validate(values)
    logger.debug(
        "Loaded alert settings (alert_url=%s, forward_to_sentry=%s)",
        settings.alert_url,
        settings.forward_to_sentry,
    )
    return settings
