"""Exception types for extdns-rbac.

This module defines the exception hierarchy raised while reconciling the
ExternalDNS RBAC objects. All exceptions inherit from RBACReconcileError so a
control loop can requeue on any of them with a single except clause.

Exception Hierarchy:
    RBACReconcileError (base)
    ├── ObjectNotFoundError - Object absent from the store (internal signal)
    ├── RemoteStoreError - Any other store failure (wraps ConnectionError)
    ├── ObjectCreateError - Create of a desired object failed
    ├── ObjectUpdateError - Update of an existing object failed
    ├── OverlappingRulesError - Desired rule set declares a pair twice
    └── SchemeRegistrationError - Object kind registered twice

Example:
    >>> from extdns_rbac.errors import ObjectUpdateError, RBACReconcileError
    >>> try:
    ...     reconciler.ensure_cluster_role(extdns)
    ... except ObjectUpdateError as e:
    ...     print(f"{e.kind} exists but was not updated")
    ... except RBACReconcileError as e:
    ...     print(f"requeue: {e}")
"""

from __future__ import annotations

from typing import Any


class RBACReconcileError(Exception):
    """Base exception for all extdns-rbac errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize RBACReconcileError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


def _describe(kind: str, name: str, namespace: str | None) -> str:
    if namespace:
        return f"{kind} '{name}' in namespace '{namespace}'"
    return f"{kind} '{name}'"


# =============================================================================
# Store Errors
# =============================================================================


class ObjectNotFoundError(RBACReconcileError):
    """Raised by a store when the requested object does not exist.

    Reconcilers convert this into ``exists=False``; it never escapes an
    ``ensure_*`` call.

    Attributes:
        kind: Object kind that was looked up.
        name: Object name.
        namespace: Object namespace (None for cluster-scoped kinds).
    """

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        super().__init__(f"{_describe(kind, name, namespace)} not found")


class RemoteStoreError(RBACReconcileError, ConnectionError):
    """Raised when the remote object store fails for any reason but not-found.

    Inherits from ConnectionError so callers that only care about
    infrastructure failures can catch the builtin type.

    Attributes:
        kind: Object kind involved in the failing call.
        name: Object name (empty for list calls).
        namespace: Object namespace.
        status: HTTP status returned by the API server, if any.
        reason: Reason reported by the API server or client.

    Example:
        >>> raise RemoteStoreError(
        ...     "ClusterRole", "external-dns", status=500, reason="etcd timeout"
        ... )
    """

    def __init__(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        *,
        operation: str = "get",
        status: int | None = None,
        reason: str = "",
    ) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        self.operation = operation
        self.status = status
        self.reason = reason
        message = f"failed to {operation} {_describe(kind, name, namespace)}"
        if reason:
            message = f"{message}: {reason}"
        details: dict[str, Any] = {}
        if status is not None:
            details["status"] = status
        RBACReconcileError.__init__(self, message, details)


# =============================================================================
# Reconcile Errors
# =============================================================================


class ObjectCreateError(RBACReconcileError):
    """Raised when creating a desired object fails.

    The object is reported as absent; the next pass retries the create.

    Attributes:
        kind: Object kind.
        name: Object name.
        namespace: Object namespace (None for cluster-scoped kinds).
    """

    def __init__(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        *,
        reason: str = "",
    ) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        self.reason = reason
        message = f"failed to create {_describe(kind, name, namespace)}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ObjectUpdateError(RBACReconcileError):
    """Raised when updating an existing object fails.

    The object exists, so callers must not fall back to a create. The last
    fetched state is carried on ``current``.

    Attributes:
        kind: Object kind.
        name: Object name.
        namespace: Object namespace (None for cluster-scoped kinds).
        current: The object as fetched before the failed update.
        change_reason: Comparator reason that triggered the update.
    """

    def __init__(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        *,
        current: Any = None,
        change_reason: str = "",
        reason: str = "",
    ) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        self.current = current
        self.change_reason = change_reason
        self.reason = reason
        message = f"failed to update {_describe(kind, name, namespace)}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    @property
    def exists(self) -> bool:
        """Update failures always refer to an existing object."""
        return True


# =============================================================================
# Declaration Errors
# =============================================================================


class OverlappingRulesError(RBACReconcileError, ValueError):
    """Raised when a desired rule set covers the same group/resource twice.

    Attributes:
        keys: The ``"<api-group>/<resource>"`` keys declared more than once.
    """

    def __init__(self, keys: list[str]) -> None:
        self.keys = keys
        message = f"rule set declares overlapping group/resource pairs: {', '.join(keys)}"
        RBACReconcileError.__init__(self, message)


class SchemeRegistrationError(RBACReconcileError, ValueError):
    """Raised when an object kind is registered twice in an ObjectScheme."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        RBACReconcileError.__init__(self, f"kind '{kind}' is already registered")


__all__ = [
    "ObjectCreateError",
    "ObjectNotFoundError",
    "ObjectUpdateError",
    "OverlappingRulesError",
    "RBACReconcileError",
    "RemoteStoreError",
    "SchemeRegistrationError",
]
