"""OpenTelemetry tracing helpers for RBAC reconciliation.

Every ensure operation runs inside a ``reconcile.<operation>`` span carrying
the kind, name and namespace of the object being reconciled. Span status is
OK on success and ERROR (with a sanitized exception message) when the
operation raises.

Tracers come from a thread-safe cache with lazy, double-checked
initialization. If OpenTelemetry fails to initialize, a NoOpTracer is
returned instead so reconciliation never depends on telemetry.

Example:
    >>> from extdns_rbac.telemetry.tracing import get_tracer, reconcile_span
    >>> tracer = get_tracer()
    >>> with reconcile_span(tracer, "ensure_cluster_role", kind="ClusterRole") as span:
    ...     span.set_attribute("rbac.changed", True)
"""

from __future__ import annotations

import re
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from collections.abc import Iterator

    from opentelemetry.trace import Tracer

TRACER_NAME = "extdns.rbac"

ATTR_OPERATION = "rbac.operation"
ATTR_KIND = "rbac.kind"
ATTR_NAME = "rbac.name"
ATTR_NAMESPACE = "rbac.namespace"

# =============================================================================
# Tracer Factory
# =============================================================================

_tracers: dict[str, Tracer] = {}
_tracer_init_failed: bool = False
_lock = threading.Lock()


def get_tracer(name: str = TRACER_NAME) -> Tracer:
    """Get or create a thread-safe tracer instance.

    Args:
        name: The tracer name. Each unique name gets its own tracer instance.

    Returns:
        OpenTelemetry Tracer, or a NoOpTracer if initialization failed.

    Example:
        >>> tracer = get_tracer()
        >>> with tracer.start_as_current_span("my_operation"):
        ...     pass
    """
    global _tracer_init_failed

    # Fast path: return cached tracer without lock
    if name in _tracers:
        return _tracers[name]

    if _tracer_init_failed:
        return trace.NoOpTracer()

    with _lock:
        if name in _tracers:
            return _tracers[name]

        if _tracer_init_failed:
            return trace.NoOpTracer()

        try:
            tracer = trace.get_tracer(name)
        except Exception:
            # Global OTel state unusable; stop retrying
            _tracer_init_failed = True
            return trace.NoOpTracer()
        _tracers[name] = tracer
        return tracer


def set_tracer(name: str, tracer: Tracer | None) -> None:
    """Set or clear a cached tracer (for testing).

    Args:
        name: The tracer name to set.
        tracer: The tracer instance to use, or None to clear.
    """
    with _lock:
        if tracer is None:
            _tracers.pop(name, None)
        else:
            _tracers[name] = tracer


def reset_tracer() -> None:
    """Clear all cached tracers and the initialization failure flag."""
    global _tracer_init_failed
    with _lock:
        _tracers.clear()
        _tracer_init_failed = False


# =============================================================================
# Error Sanitization
# =============================================================================

_SENSITIVE_KEY_PATTERN = re.compile(
    r"(password|token|bearer|api_key|authorization|client-key-data|client-certificate-data)"
    r"\s*[=:]\s*\S+",
    re.IGNORECASE,
)
_URL_CREDENTIAL_PATTERN = re.compile(r"://[^@/\s]+:[^@/\s]+@")


def sanitize_error_message(msg: str, max_length: int = 500) -> str:
    """Redact credentials from an error message and truncate it.

    API server errors can echo request headers and kubeconfig fragments, so
    bearer tokens, client key data and URL credentials are redacted before a
    message is recorded on a span.

    Args:
        msg: Raw error message to sanitize.
        max_length: Maximum length of returned message.

    Returns:
        Sanitized and truncated error message.

    Example:
        >>> sanitize_error_message("Unauthorized: token=abc123")
        'Unauthorized: token=<REDACTED>'
    """
    sanitized = _URL_CREDENTIAL_PATTERN.sub("://<REDACTED>@", msg)

    def _redact(match: re.Match[str]) -> str:
        text = match.group(0)
        if "=" in text:
            return text.split("=", 1)[0] + "=<REDACTED>"
        return text.split(":", 1)[0] + ": <REDACTED>"

    sanitized = _SENSITIVE_KEY_PATTERN.sub(_redact, sanitized)
    return sanitized[:max_length]


# =============================================================================
# Spans
# =============================================================================


@contextmanager
def reconcile_span(
    tracer: Tracer,
    operation: str,
    *,
    kind: str | None = None,
    name: str | None = None,
    namespace: str | None = None,
    extra_attributes: dict[str, Any] | None = None,
) -> Iterator[trace.Span]:
    """Context manager for creating reconcile operation spans.

    Args:
        tracer: OpenTelemetry tracer instance.
        operation: Operation name (e.g., "ensure_cluster_role").
        kind: Kind of the object being reconciled.
        name: Name of the object being reconciled.
        namespace: Namespace of the object, omitted for cluster-scoped kinds.
        extra_attributes: Additional span attributes.

    Yields:
        The active span for adding custom attributes.
    """
    attributes: dict[str, Any] = {ATTR_OPERATION: operation}

    if kind is not None:
        attributes[ATTR_KIND] = kind
    if name is not None:
        attributes[ATTR_NAME] = name
    if namespace is not None:
        attributes[ATTR_NAMESPACE] = namespace
    if extra_attributes:
        attributes.update(extra_attributes)

    with tracer.start_as_current_span(f"reconcile.{operation}", attributes=attributes) as span:
        try:
            yield span
            span.set_status(Status(StatusCode.OK))
        except Exception as e:
            sanitized = sanitize_error_message(str(e))
            span.set_status(Status(StatusCode.ERROR, type(e).__name__))
            span.set_attribute("exception.type", type(e).__name__)
            span.set_attribute("exception.message", sanitized)
            raise


__all__ = [
    "ATTR_KIND",
    "ATTR_NAME",
    "ATTR_NAMESPACE",
    "ATTR_OPERATION",
    "TRACER_NAME",
    "get_tracer",
    "reconcile_span",
    "reset_tracer",
    "sanitize_error_message",
    "set_tracer",
]
