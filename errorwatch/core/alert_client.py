"""
HTTP alert client for urgent error reports.

Sends a single GET request to an SMS gateway asking it to text the on-call
number(s). There is no retry: an urgent report that cannot be delivered is
recorded by the caller and execution continues.
"""

from __future__ import annotations

import logging
from datetime import datetime

import httpx
from pydantic import BaseModel, Field

from errorwatch.core.errors import AlertTransportError
from errorwatch.core.settings import DEFAULT_ALERT_NAME, AlertSettings


logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _local_now() -> datetime:
    return datetime.now().astimezone()


class AlertRequest(BaseModel):
    message: str
    phone_numbers: str
    template_code: str
    level: int = 1
    name: str = DEFAULT_ALERT_NAME
    timestamp: datetime = Field(default_factory=_local_now)

    def formatted_timestamp(self) -> str:
        return self.timestamp.strftime(TIMESTAMP_FORMAT)

    def to_params(self) -> dict[str, str]:
        """Query parameters understood by the SMS gateway."""
        return {
            "name": self.name,
            "errorMsg": f"{self.message} time: {self.formatted_timestamp()}",
            "level": str(self.level),
            "phoneNumbers": self.phone_numbers,
            "templateCode": self.template_code,
        }


def build_alert_request(message: str, settings: AlertSettings) -> AlertRequest:
    """Create an AlertRequest addressed to the configured recipients."""
    return AlertRequest(
        message=message,
        phone_numbers=settings.phone_numbers,
        template_code=settings.template_code,
        level=settings.level,
        name=settings.alert_name,
    )


def send_alert(
    url: str,
    request: AlertRequest,
    *,
    timeout_seconds: float = 10.0,
) -> str:
    """
    GET the alert endpoint with the request's query parameters.

    Args:
        url: Alert gateway endpoint
        request: Alert to deliver
        timeout_seconds: HTTP request timeout

    Returns:
        Raw response text from the gateway

    Raises:
        AlertTransportError: On network failure, a non-200 status or an
            empty response body
    """
    logger.info(
        "Sending alert to %s (template=%s, level=%d)",
        url,
        request.template_code,
        request.level,
    )

    try:
        with httpx.Client(timeout=timeout_seconds) as client:
            response = client.get(
                url,
                params=request.to_params(),
                headers={"Accept": "application/json"},
            )
            status_code = response.status_code
            body = response.text
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise AlertTransportError(f"Alert request to {url} failed: {exc}") from exc

    if status_code != 200 or not body:
        raise AlertTransportError(
            body or f"Alert endpoint returned HTTP {status_code} with an empty body",
            status_code=status_code,
        )

    logger.info("Alert accepted (status=%d)", status_code)
    return body


def send_warn_sms(request: AlertRequest, *, settings: AlertSettings) -> str:
    """
    Deliver an alert to the endpoint configured in settings.

    Raises:
        AlertTransportError: If no endpoint is configured or delivery fails
    """
    if not settings.alert_url:
        raise AlertTransportError("No alert URL configured (ERRORWATCH_ALERT_URL)")

    return send_alert(
        settings.alert_url,
        request,
        timeout_seconds=settings.timeout_seconds,
    )
