"""Request timing middleware that emits one canonical log line per request."""

import os
import time
import uuid
from typing import Any

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import bind_contextvars, clear_contextvars, get_logger
from core.wide_event import clear_wide_event, get_wide_event, init_wide_event

logger = get_logger(__name__)

SERVICE_NAME = os.getenv("SERVICE_NAME", "certificate-image-service")
SERVICE_VERSION = os.getenv("SERVICE_VERSION", "0.1.0")

# Requests slower than this are always logged
SLOW_REQUEST_MS = 1000


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _route_path(scope: Scope) -> str:
    return getattr(scope.get("route"), "path", None) or scope.get("path", "")


def _should_emit(event: dict[str, Any]) -> bool:
    status = event.get("http_status_code")
    return (
        status is None
        or status >= 400
        or event["duration_ms"] > SLOW_REQUEST_MS
        or bool(event.get("certificate_key"))
    )


class RequestTimingMiddleware:
    """Times each request and logs its wide event when the request ends.

    Error responses, slow requests and certificate uploads are logged. Fast
    successful health checks are not. The request id is bound to structlog
    contextvars so service log lines for the same request can be joined.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        request_id = str(uuid.uuid4())
        client = scope.get("client")

        init_wide_event().update(
            service_name=SERVICE_NAME,
            service_version=SERVICE_VERSION,
            request_id=request_id,
            http_method=scope.get("method", "UNKNOWN"),
            http_path=scope.get("path", ""),
            http_client_ip=client[0] if client else "unknown",
        )
        bind_contextvars(request_id=request_id)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                get_wide_event()["http_status_code"] = int(message["status"])
                message["headers"] = [
                    *message.get("headers", []),
                    (b"x-request-duration-ms", f"{_elapsed_ms(start):.2f}".encode()),
                    (b"x-request-id", request_id.encode()),
                ]
            elif message["type"] == "http.response.body" and not message.get(
                "more_body", False
            ):
                self._finish(scope, start)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            # Still set when the app failed before the response body was sent
            event = get_wide_event()
            if event:
                event["exception_type"] = type(exc).__name__
                self._finish(scope, start, outcome="exception")
            raise

    @staticmethod
    def _finish(scope: Scope, start: float, outcome: str | None = None) -> None:
        event = get_wide_event()
        if not event:
            return

        status = event.get("http_status_code")
        event["http_route"] = _route_path(scope)
        event["duration_ms"] = round(_elapsed_ms(start), 2)
        event["outcome"] = outcome or (
            "success" if status is not None and status < 400 else "error"
        )

        if outcome == "exception" or _should_emit(event):
            logger.info("request.completed", **event)

        clear_wide_event()
        clear_contextvars()
