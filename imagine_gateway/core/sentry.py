"""Optional Sentry reporting for the gateway.

Enabled only when SENTRY_DSN is set. Provider keys are scrubbed from
breadcrumbs and request URLs before an event leaves the process.
"""

import logging

from imagine_gateway.core.config import settings
from imagine_gateway.core.logging import redact

logger = logging.getLogger(__name__)

_SCRUBBED_HEADERS = {"authorization", "x-provider-key", "x-goog-api-key"}


def scrub_event(event: dict, hint: dict | None = None) -> dict:
    """before_send hook: drop credential headers and mask keys in URLs and messages."""
    request = event.get("request") or {}
    headers = request.get("headers")
    if isinstance(headers, dict):
        request["headers"] = {
            name: ("***" if name.lower() in _SCRUBBED_HEADERS else value) for name, value in headers.items()
        }
    if isinstance(request.get("url"), str):
        request["url"] = redact(request["url"])
    if isinstance(request.get("query_string"), str):
        request["query_string"] = redact("?" + request["query_string"])[1:]

    for crumb in (event.get("breadcrumbs") or {}).get("values", []):
        if isinstance(crumb.get("message"), str):
            crumb["message"] = redact(crumb["message"])
        data = crumb.get("data") or {}
        if isinstance(data.get("url"), str):
            data["url"] = redact(data["url"])
    return event


def init_sentry() -> None:
    if not settings.sentry_dsn:
        logger.debug("Sentry DSN not configured, reporting disabled")
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=0.1 if settings.app_env == "production" else 1.0,
        send_default_pii=False,
        before_send=scrub_event,
        integrations=[FastApiIntegration(transaction_style="endpoint")],
    )
    sentry_sdk.set_tag("gateway.max_concurrent", settings.queue_max_concurrent)
    logger.info("Sentry reporting enabled for %s", settings.app_env)
