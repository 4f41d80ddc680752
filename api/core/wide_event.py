"""Request-scoped "wide event": one dict of context per request.

RequestTimingMiddleware creates the event when a request starts, routes and
services add certificate fields to it while the request runs, and the
middleware logs it once as ``request.completed`` when the response ends.

This module only holds the data; telemetry.py owns the lifecycle.

Usage:
    from core.wide_event import set_wide_event_fields

    # In route handlers or services:
    set_wide_event_fields(org_code=42, certificate_template="classic.svg")
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any] | None] = ContextVar("wide_event", default=None)


def init_wide_event() -> dict[str, Any]:
    """Start an empty event for the current async context and return it.

    Called by RequestTimingMiddleware at request start. The middleware fills
    in the request id, method and path straight away, which is what makes
    the setters below take effect.
    """
    event: dict[str, Any] = {}
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Get the current event.

    Outside a request (CLI, tests, before init) this returns a fresh empty
    dict, so writes to it are simply dropped.
    """
    event = _wide_event.get()
    return event if event is not None else {}


def set_wide_event_field(key: str, value: Any) -> None:
    """Set a single field on the current wide event.

    No-op outside a request, or before the middleware has populated the
    event. Logging context must never fail a certificate request.
    """
    set_wide_event_fields(**{key: value})


def set_wide_event_fields(**fields: Any) -> None:
    """Set several fields on the current wide event.

    No-op outside a request, or before the middleware has populated the
    event, so the CLI and direct service calls share code with the request
    path without producing log output.

    Example:
        set_wide_event_fields(certificate_key="42/certificate_7_3.png")
    """
    event = get_wide_event()
    if event:
        event.update(fields)


def clear_wide_event() -> None:
    """Drop the event for the current context.

    Called by RequestTimingMiddleware after emitting the event. Later reads
    get an empty dict and later writes are ignored.
    """
    _wide_event.set(None)
