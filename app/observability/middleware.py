from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import Headers, MutableHeaders

from app.observability.metrics import get_metrics

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

# Probes and the metrics endpoint itself are not metered.
UNMETERED_PATHS = frozenset({"/api/metrics", "/health"})

access_log = structlog.get_logger("access")


def resolve_request_id(scope: dict[str, Any]) -> str:
    """Reuse a caller-supplied request id when it is sane, else mint one."""
    incoming = (Headers(scope=scope).get(REQUEST_ID_HEADER) or "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return uuid.uuid4().hex


class RequestContextMiddleware:
    """Per-request id, access log line and HTTP metrics for snippet API calls."""

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = resolve_request_id(scope)
        path = scope.get("path", "")
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=scope.get("method"), path=path)

        response_status = 500
        started = perf_counter()

        async def tagged_send(message: dict[str, Any]) -> None:
            nonlocal response_status
            if message.get("type") == "http.response.start":
                response_status = int(message.get("status", 500))
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, tagged_send)
        finally:
            elapsed_ms = (perf_counter() - started) * 1000.0
            if path not in UNMETERED_PATHS:
                get_metrics().observe_http_request(elapsed_ms, status_code=response_status)

            log = access_log.warning if response_status >= 500 else access_log.info
            log("http_request", status_code=response_status, elapsed_ms=round(elapsed_ms, 2))
            structlog.contextvars.clear_contextvars()
