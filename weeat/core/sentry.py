from __future__ import annotations

import re
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from weeat.core.config import settings

EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
BEARER_PATTERN = re.compile(r"Bearer\s+[\w\-\.]+", re.IGNORECASE)
API_KEY_PATTERN = re.compile(r"key=[\w\-]+")


def mask_pii(text: str | None) -> str | None:
    """Mask e-mail addresses, bearer tokens and API keys in text."""
    if text is None:
        return None
    text = EMAIL_PATTERN.sub("[EMAIL_REDACTED]", text)
    text = BEARER_PATTERN.sub("Bearer [TOKEN_REDACTED]", text)
    text = API_KEY_PATTERN.sub("key=[KEY_REDACTED]", text)
    return text


def before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """Filter and sanitize Sentry events before sending."""
    if "request" in hint:
        request = hint["request"]
        if hasattr(request, "headers"):
            request_id = request.headers.get("x-request-id")
            if request_id:
                event.setdefault("tags", {})["request_id"] = request_id

    if "exception" in event:
        for exception in event["exception"].get("values", []):
            if "value" in exception:
                exception["value"] = mask_pii(exception["value"])

    if "breadcrumbs" in event:
        for breadcrumb in event["breadcrumbs"].get("values", []):
            if "message" in breadcrumb:
                breadcrumb["message"] = mask_pii(breadcrumb["message"])
            if "data" in breadcrumb:
                for key, value in breadcrumb["data"].items():
                    if isinstance(value, str):
                        breadcrumb["data"][key] = mask_pii(value)

    return event


def init_sentry() -> None:
    """Initialize Sentry error tracking with PII filtering."""
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment or settings.environment,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            LoggingIntegration(
                level=None,
                event_level=None,
            ),
        ],
        traces_sample_rate=0.1,
        before_send=before_send,
        send_default_pii=False,
        attach_stacktrace=True,
        max_breadcrumbs=50,
    )

    sentry_sdk.set_tag("service", settings.app_name)
    sentry_sdk.set_tag("environment", settings.environment)
