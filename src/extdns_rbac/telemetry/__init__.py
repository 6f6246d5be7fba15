"""Structured logging and OpenTelemetry tracing for extdns-rbac.

- configure_logging: structlog setup with trace context injection
- get_tracer: cached, thread-safe tracer with NoOp fallback
- reconcile_span: span around a single reconcile operation

Example:
    >>> from extdns_rbac.telemetry import configure_logging, get_tracer, reconcile_span
    >>> configure_logging(log_level="DEBUG", json_output=False)
    >>> with reconcile_span(get_tracer(), "ensure_cluster_role", kind="ClusterRole"):
    ...     pass
"""

from __future__ import annotations

from extdns_rbac.telemetry.logging import add_trace_context, configure_logging
from extdns_rbac.telemetry.tracing import (
    TRACER_NAME,
    get_tracer,
    reconcile_span,
    reset_tracer,
    sanitize_error_message,
    set_tracer,
)

__all__ = [
    "TRACER_NAME",
    "add_trace_context",
    "configure_logging",
    "get_tracer",
    "reconcile_span",
    "reset_tracer",
    "sanitize_error_message",
    "set_tracer",
]
