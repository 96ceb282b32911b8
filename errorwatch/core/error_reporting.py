"""
Error reporting entry points.

Each call finds the root cause of a caught exception and logs one structured
record with its type, message and the last known origin. Urgent reports also
text the on-call number(s) through the alert gateway. When Sentry is
installed and configured, the exception is forwarded there too.

These functions are terminal sinks: they never raise to the caller.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from errorwatch.core.alert_client import build_alert_request, send_warn_sms
from errorwatch.core.error_tree import extract_root_cause
from errorwatch.core.errors import MalformedInputError, SerializationError
from errorwatch.core.settings import AlertSettings, load_settings


logger = logging.getLogger(__name__)

ERROR_TYPE_KEY = "errorType"
ERROR_REASON_KEY = "errorReason"
ORIGIN_LOCATION_KEY = "originLocation"

URGENT_MESSAGE_TEMPLATE = "Urgent error! {label} failed"


def report(exc: BaseException, *, settings: AlertSettings | None = None) -> None:
    """
    Log the root cause of an exception.

    Args:
        exc: The exception to report.
        settings: Optional settings; loaded from the environment when omitted.
    """
    settings = _resolve_settings(settings)
    entry = build_log_entry(exc, settings=settings)
    _emit(entry)
    _forward_to_sentry(exc, settings=settings)


def report_with_context(
    exc: BaseException,
    extra_fields: Mapping[str, Any] | None,
    *,
    settings: AlertSettings | None = None,
) -> None:
    """
    Log the root cause of an exception together with caller-supplied fields.

    Extra fields are applied after the default keys, so on a collision the
    caller's value is the one logged.

    Args:
        exc: The exception to report.
        extra_fields: Extra key/value pairs for the log record.
        settings: Optional settings; loaded from the environment when omitted.
    """
    settings = _resolve_settings(settings)
    entry = build_log_entry(exc, settings=settings)
    if not isinstance(extra_fields, Mapping):
        if extra_fields is not None:
            logger.warning(
                "Ignoring extra fields of type %s; expected a mapping",
                type(extra_fields).__name__,
            )
        extra_fields = None
    if extra_fields:
        entry.update(extra_fields)
    _emit(entry)
    _forward_to_sentry(exc, settings=settings, context=extra_fields)


def report_urgent(
    exc: BaseException,
    urgent_label: str,
    *,
    settings: AlertSettings | None = None,
) -> None:
    """
    Log the root cause of an exception and send an SMS alert.

    A failed alert is reported on its own (through report_with_context, never
    through this function) and printed to stderr before the original record
    is logged.

    Args:
        exc: The exception to report.
        urgent_label: Short name of the operation that failed.
        settings: Optional settings; loaded from the environment when omitted.
    """
    settings = _resolve_settings(settings)
    entry = build_log_entry(exc, settings=settings)
    _send_urgent_alert(urgent_label, settings=settings)
    _emit(entry)
    _forward_to_sentry(exc, settings=settings, context={"urgent": urgent_label})


def build_log_entry(exc: BaseException, *, settings: AlertSettings) -> dict[str, Any]:
    """
    Build the structured record for an exception.

    Fields of individual exceptions that cannot be read are left empty while
    the rest of the chain is still walked. Falls back to empty type/reason
    only when exc is not an exception or its cause chain is too deep.
    """
    try:
        root = extract_root_cause(exc, max_depth=settings.max_cause_depth)
    except (SerializationError, MalformedInputError) as err:
        logger.warning("Could not extract root cause: %s; logging defaults", err)
        return _default_entry()
    except Exception:
        logger.warning(
            "Could not extract root cause from %s; logging defaults",
            type(exc).__name__,
            exc_info=True,
        )
        return _default_entry()

    return {
        ERROR_TYPE_KEY: root.type_name,
        ERROR_REASON_KEY: root.message,
        ORIGIN_LOCATION_KEY: root.origin_location,
    }


def _default_entry() -> dict[str, Any]:
    return {
        ERROR_TYPE_KEY: "",
        ERROR_REASON_KEY: "",
        ORIGIN_LOCATION_KEY: None,
    }


def _send_urgent_alert(urgent_label: str, *, settings: AlertSettings) -> None:
    message = URGENT_MESSAGE_TEMPLATE.format(label=urgent_label)
    request = build_alert_request(message, settings)
    try:
        result = send_warn_sms(request, settings=settings)
        logger.info("Urgent alert sent, result: %s", result)
    except Exception as alert_exc:
        report_with_context(
            alert_exc,
            {"alertFailedAt": request.formatted_timestamp()},
            settings=settings,
        )
        traceback.print_exception(alert_exc, file=sys.stderr)


def _emit(entry: dict[str, Any]) -> None:
    try:
        payload = json.dumps(entry, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        payload = repr(entry)
    logger.error("Error reported: %s", payload, extra={"error_report": entry})


def _resolve_settings(settings: AlertSettings | None) -> AlertSettings:
    if settings is not None:
        return settings
    try:
        return load_settings()
    except ValidationError:
        logger.warning("Invalid errorwatch settings; using defaults", exc_info=True)
        return AlertSettings()


def _forward_to_sentry(
    exc: BaseException,
    *,
    settings: AlertSettings,
    context: Mapping[str, Any] | None = None,
) -> None:
    if not settings.forward_to_sentry:
        return

    try:
        import sentry_sdk

        with sentry_sdk.new_scope() as scope:
            if context:
                for key, value in context.items():
                    scope.set_tag(key, value)
            sentry_sdk.capture_exception(exc)
    except Exception:
        # If Sentry is unavailable, we still have logs.
        logger.debug("Sentry not available for error reporting", exc_info=True)
