"""extdns-rbac: RBAC reconciliation for the ExternalDNS operator.

Keeps the operator's Role and RoleBinding in the operand namespace and the
shared ExternalDNS ClusterRole and ClusterRoleBinding in their desired state.

Example:
    >>> from extdns_rbac import RBACReconciler, ReconcilerConfig, KubernetesObjectStore
    >>> from extdns_rbac.scheme import build_operator_scheme
    >>> from extdns_rbac.schemas import ExternalDNS
    >>> reconciler = RBACReconciler(
    ...     KubernetesObjectStore(build_operator_scheme()), ReconcilerConfig()
    ... )
    >>> reconciler.ensure_rbac(ExternalDNS(name="sample"))
"""

from __future__ import annotations

from typing import Any

__version__ = "0.1.0"
__all__ = [
    "KubernetesObjectStore",
    "RBACReconciler",
    "ReconcilerConfig",
]


# Lazy imports to keep the kubernetes client off the import path of schemas
def __getattr__(name: str) -> Any:
    """Lazy import of package components."""
    if name == "RBACReconciler":
        from extdns_rbac.reconciler import RBACReconciler

        return RBACReconciler
    if name == "ReconcilerConfig":
        from extdns_rbac.config import ReconcilerConfig

        return ReconcilerConfig
    if name == "KubernetesObjectStore":
        from extdns_rbac.store import KubernetesObjectStore

        return KubernetesObjectStore
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
