"""
Sentry Error Tracking Configuration
Sentry SDK initialization for the portfolio API.
"""

import logging
from typing import Any, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from portfolio.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

SENSITIVE_HEADERS = ("authorization", "cookie", "x-api-key", "api-key")
HEALTH_PATHS = ("/api/health", "/api/db/health", "/api/db/status")


def before_send(event: dict[str, Any], hint: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Drop health check noise and redact credentials before sending."""
    request = event.get("request")
    if not request:
        return event

    if request.get("url", "").endswith(HEALTH_PATHS):
        return None

    headers = request.get("headers") or {}
    for header in list(headers):
        if header.lower() in SENSITIVE_HEADERS:
            headers[header] = "[REDACTED]"

    # Contact form bodies carry visitor personal data
    if request.get("data"):
        request["data"] = "[REDACTED]"

    return event


def before_send_transaction(event: dict[str, Any], hint: dict[str, Any]) -> Optional[dict[str, Any]]:
    # Transactions are named by endpoint, so match on the request URL
    url = (event.get("request") or {}).get("url", "")
    if url.endswith(HEALTH_PATHS):
        return None
    return event


def init_sentry(config: Optional[Settings] = None) -> bool:
    """
    Initialize Sentry SDK with FastAPI integration.

    Returns:
        bool: True if Sentry was initialized, False when disabled or on error.
    """
    config = config or default_settings
    if not config.sentry_dsn:
        logger.info("Sentry DSN not configured, error tracking disabled")
        return False

    environment = config.sentry_environment or config.environment
    try:
        sentry_sdk.init(
            dsn=config.sentry_dsn,
            environment=environment,
            release=f"portfolio-api@{config.app_version}",
            traces_sample_rate=config.sentry_traces_sample_rate,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                StarletteIntegration(transaction_style="endpoint"),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
                SqlalchemyIntegration(),
            ],
            before_send=before_send,
            before_send_transaction=before_send_transaction,
            send_default_pii=False,
            attach_stacktrace=True,
            max_breadcrumbs=50,
        )
        sentry_sdk.set_tag("app_name", config.app_name)
        logger.info(f"Sentry initialized (env={environment}, traces={config.sentry_traces_sample_rate})")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")
        return False


def capture_exception(error: Exception, extra: Optional[dict[str, Any]] = None) -> Optional[str]:
    """
    Capture an exception and send to Sentry.

    Returns:
        Event ID if captured, None otherwise
    """
    with sentry_sdk.new_scope() as scope:
        for key, value in (extra or {}).items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(error)
