"""Prometheus metrics: HTTP traffic, gateway calls per provider, rate-limit rejections."""

import time

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

APP_INFO = Info("app", "Imagine gateway application info")
APP_INFO.info({"version": "1.0.0", "name": "imagine_gateway"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

GATEWAY_CALLS = Counter(
    "gateway_calls_total",
    "Gateway operations by provider and outcome",
    ["operation", "provider", "outcome"],
)

GATEWAY_CALL_DURATION = Histogram(
    "gateway_call_duration_seconds",
    "Provider round-trip duration in seconds",
    ["operation", "provider"],
    buckets=[0.25, 0.5, 1, 2.5, 5, 10, 20, 30, 60],
)

RATE_LIMIT_REJECTIONS = Counter(
    "gateway_rate_limit_rejections_total",
    "Calls rejected by a rate limit rule",
    ["rule"],
)


# --- HTTP middleware ---

_PROVIDER_PREFIX = "/api/v1/providers/"
_PROVIDER_STATIC = frozenset({"config"})
_UNTRACKED_PATHS = frozenset({"/metrics", "/api/v1/health"})


def _normalize_path(path: str) -> str:
    """Collapse per-provider paths to one label value: /api/v1/providers/{id}/..."""
    if not path.startswith(_PROVIDER_PREFIX):
        return path
    provider_id, sep, tail = path[len(_PROVIDER_PREFIX) :].partition("/")
    if not provider_id or provider_id in _PROVIDER_STATIC:
        return path
    return f"{_PROVIDER_PREFIX}{{id}}{sep}{tail}"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Count and time every API request; unhandled errors are recorded as 500."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in _UNTRACKED_PATHS:
            return await call_next(request)

        path = _normalize_path(request.url.path)
        status = 500
        start = time.perf_counter()
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            REQUEST_COUNT.labels(method=request.method, path=path, status=status).inc()
            REQUEST_DURATION.labels(method=request.method, path=path).observe(time.perf_counter() - start)


def metrics_response() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
