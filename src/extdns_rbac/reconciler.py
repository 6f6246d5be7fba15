"""Reconcilers for the RBAC objects of the ExternalDNS operand.

Each ``ensure_*`` method drives one object through the same cycle:

1. Build the desired object.
2. Fetch the current object. Not-found means absent; any other failure is
   raised before anything is written.
3. Absent: create the desired object, then re-fetch it.
4. Present: compare. Unchanged objects are returned as fetched without a
   write. Changed objects are updated from a copy of the current object
   with only the drifted fields overwritten, then re-fetched.

The returned object is always the one read back from the store, so
server-populated fields (uid, resourceVersion) are present.

Example:
    >>> from extdns_rbac.config import ReconcilerConfig
    >>> from extdns_rbac.reconciler import RBACReconciler
    >>> reconciler = RBACReconciler(store, ReconcilerConfig())
    >>> result = reconciler.ensure_rbac(ExternalDNS(name="sample"))
    >>> result.cluster_role_binding.current.subjects[0].name
    'external-dns-sample'
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

import structlog

from extdns_rbac.compare import cluster_role_binding_changed, role_binding_changed, rules_changed
from extdns_rbac.desired import (
    desired_cluster_role,
    desired_cluster_role_binding,
    desired_operator_role,
    desired_operator_role_binding,
)
from extdns_rbac.errors import (
    ObjectCreateError,
    ObjectNotFoundError,
    ObjectUpdateError,
    RemoteStoreError,
)
from extdns_rbac.naming import EXTERNAL_DNS_OWNER_KIND, OPERATOR_SERVICE_ACCOUNT_NAME
from extdns_rbac.schemas.diff import ChangeType, ObjectDiff, PlanResult
from extdns_rbac.schemas.rbac import (
    ClusterRole,
    ClusterRoleBinding,
    K8sObject,
    Role,
    RoleBinding,
    ServiceAccount,
)
from extdns_rbac.telemetry.tracing import get_tracer, reconcile_span

if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

    from extdns_rbac.config import ReconcilerConfig
    from extdns_rbac.schemas.externaldns import ExternalDNS
    from extdns_rbac.store import ObjectStore

T = TypeVar("T", bound=K8sObject)
R = TypeVar("R", Role, ClusterRole)

# (changed, updated copy of current, reason)
Comparison = Callable[[T, T], tuple[bool, T, str]]


@dataclass(frozen=True)
class EnsureResult(Generic[T]):
    """Outcome of a successful ensure call.

    Attributes:
        exists: Whether the object is present in the store.
        current: Object as read back from the store, None if absent.
    """

    exists: bool
    current: T | None


@dataclass(frozen=True)
class RBACReconcileResult:
    """Outcome of a full reconcile pass, in reconcile order."""

    operator_role: EnsureResult[Role]
    operator_role_binding: EnsureResult[RoleBinding]
    cluster_role: EnsureResult[ClusterRole]
    cluster_role_binding: EnsureResult[ClusterRoleBinding]

    def __str__(self) -> str:
        """Return human-readable summary of the pass."""
        lines = ["RBAC Reconcile:"]
        for result in (
            self.operator_role,
            self.operator_role_binding,
            self.cluster_role,
            self.cluster_role_binding,
        ):
            obj = result.current
            if obj is None:
                lines.append("  <absent>")
                continue
            where = f" -n {obj.namespace}" if obj.namespace else ""
            lines.append(
                f"  {obj.KIND}/{obj.name}{where} (resourceVersion "
                f"{obj.metadata.resource_version or '-'})"
            )
        return "\n".join(lines)


def _rule_comparison(current: R, desired: R) -> tuple[bool, R, str]:
    changed, reason = rules_changed(current.rules, desired.rules)
    if not changed:
        return False, current, ""
    return True, current.model_copy(update={"rules": list(desired.rules)}), reason


def _role_binding_comparison(
    current: RoleBinding, desired: RoleBinding
) -> tuple[bool, RoleBinding, str]:
    change = role_binding_changed(current, desired)
    return change.changed, change.updated, change.reason


def _cluster_role_binding_comparison(
    current: ClusterRoleBinding, desired: ClusterRoleBinding
) -> tuple[bool, ClusterRoleBinding, str]:
    change = cluster_role_binding_changed(current, desired)
    return change.changed, change.updated, change.reason


class RBACReconciler:
    """Reconciles the operator and ExternalDNS RBAC objects against a store.

    The reconciler holds no state between calls: every pass recomputes the
    desired objects and fetches the current ones fresh.

    Attributes:
        config: Namespaces and runtime settings.
    """

    def __init__(
        self,
        store: ObjectStore,
        config: ReconcilerConfig,
        *,
        tracer: Tracer | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            store: Remote object store.
            config: Reconciler configuration.
            tracer: Tracer for reconcile spans. Defaults to the package tracer.
        """
        self._store = store
        self.config = config
        self._tracer = tracer if tracer is not None else get_tracer()
        self._log = structlog.get_logger(__name__)

    # =========================================================================
    # Ensure Operations
    # =========================================================================

    def ensure_operator_role(self, namespace: str) -> EnsureResult[Role]:
        """Ensure the operator's Role exists in the operand namespace.

        Args:
            namespace: Operand namespace.

        Returns:
            EnsureResult with the stored Role.

        Raises:
            RemoteStoreError: If the current Role could not be fetched.
            ObjectCreateError: If the Role was absent and could not be created.
            ObjectUpdateError: If the Role differs and could not be updated.
        """
        desired = desired_operator_role(OPERATOR_SERVICE_ACCOUNT_NAME, namespace)
        return self._ensure("ensure_operator_role", desired, _rule_comparison)

    def ensure_operator_role_binding(
        self,
        namespace: str,
        operator_namespace: str,
    ) -> EnsureResult[RoleBinding]:
        """Ensure the operator's RoleBinding exists in the operand namespace.

        The binding's single subject is repaired field by field: a drifted
        subject name or namespace is overwritten in place.

        Args:
            namespace: Operand namespace.
            operator_namespace: Namespace of the operator's service account.

        Returns:
            EnsureResult with the stored RoleBinding.

        Raises:
            RemoteStoreError: If the current binding could not be fetched.
            ObjectCreateError: If the binding was absent and could not be created.
            ObjectUpdateError: If the binding differs and could not be updated.
        """
        desired = desired_operator_role_binding(
            OPERATOR_SERVICE_ACCOUNT_NAME, namespace, operator_namespace
        )
        return self._ensure(
            "ensure_operator_role_binding", desired, _role_binding_comparison
        )

    def ensure_cluster_role(self, extdns: ExternalDNS) -> EnsureResult[ClusterRole]:
        """Ensure the shared ExternalDNS ClusterRole exists.

        Args:
            extdns: ExternalDNS instance being reconciled.

        Returns:
            EnsureResult with the stored ClusterRole.

        Raises:
            RemoteStoreError: If the current ClusterRole could not be fetched.
            ObjectCreateError: If the ClusterRole was absent and could not be created.
            ObjectUpdateError: If the ClusterRole differs and could not be updated.
        """
        return self._ensure("ensure_cluster_role", desired_cluster_role(extdns), _rule_comparison)

    def ensure_cluster_role_binding(
        self,
        namespace: str,
        extdns: ExternalDNS,
    ) -> EnsureResult[ClusterRoleBinding]:
        """Ensure the shared ExternalDNS ClusterRoleBinding exists.

        Its subjects are the service account of ``extdns`` plus every service
        account in ``namespace`` owned by an ExternalDNS instance.

        Args:
            namespace: Operand namespace.
            extdns: ExternalDNS instance being reconciled.

        Returns:
            EnsureResult with the stored ClusterRoleBinding.

        Raises:
            RemoteStoreError: If the owned service accounts or the current
                binding could not be fetched.
            ObjectCreateError: If the binding was absent and could not be created.
            ObjectUpdateError: If the binding differs and could not be updated.
        """
        owned = self.current_owned_service_accounts(namespace)
        desired = desired_cluster_role_binding(namespace, extdns, owned)
        return self._ensure(
            "ensure_cluster_role_binding", desired, _cluster_role_binding_comparison
        )

    def current_owned_service_accounts(self, namespace: str) -> list[str]:
        """List the service accounts in ``namespace`` owned by an ExternalDNS instance.

        Args:
            namespace: Operand namespace.

        Returns:
            Service account names in store order.

        Raises:
            RemoteStoreError: If the service accounts could not be listed.
        """
        accounts = self._store.list_objects(ServiceAccount, namespace)
        return [
            account.name
            for account in accounts
            if any(
                ref.kind == EXTERNAL_DNS_OWNER_KIND
                for ref in account.metadata.owner_references
            )
        ]

    def ensure_rbac(self, extdns: ExternalDNS) -> RBACReconcileResult:
        """Run one reconcile pass over all four RBAC objects.

        Objects are reconciled in order (operator Role, operator RoleBinding,
        ClusterRole, ClusterRoleBinding). The first failure stops the pass.

        Args:
            extdns: ExternalDNS instance being reconciled.

        Returns:
            RBACReconcileResult with the stored objects.

        Raises:
            RBACReconcileError: From the first ensure call that failed.
        """
        namespace = self.config.operand_namespace
        self._log.debug("rbac_reconcile_started", extdns=extdns.name, namespace=namespace)

        result = RBACReconcileResult(
            operator_role=self.ensure_operator_role(namespace),
            operator_role_binding=self.ensure_operator_role_binding(
                namespace, self.config.operator_namespace
            ),
            cluster_role=self.ensure_cluster_role(extdns),
            cluster_role_binding=self.ensure_cluster_role_binding(namespace, extdns),
        )

        self._log.info("rbac_reconcile_completed", extdns=extdns.name, namespace=namespace)
        return result

    def plan(self, extdns: ExternalDNS) -> PlanResult:
        """Compute what a reconcile pass would do, without writing.

        Args:
            extdns: ExternalDNS instance being reconciled.

        Returns:
            PlanResult with one diff per object, in reconcile order.

        Raises:
            RemoteStoreError: If any current object could not be fetched.
        """
        namespace = self.config.operand_namespace
        owned = self.current_owned_service_accounts(namespace)

        return PlanResult(
            diffs=[
                self._plan_one(
                    desired_operator_role(OPERATOR_SERVICE_ACCOUNT_NAME, namespace),
                    _rule_comparison,
                ),
                self._plan_one(
                    desired_operator_role_binding(
                        OPERATOR_SERVICE_ACCOUNT_NAME,
                        namespace,
                        self.config.operator_namespace,
                    ),
                    _role_binding_comparison,
                ),
                self._plan_one(desired_cluster_role(extdns), _rule_comparison),
                self._plan_one(
                    desired_cluster_role_binding(namespace, extdns, owned),
                    _cluster_role_binding_comparison,
                ),
            ]
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _current(self, model: type[T], name: str, namespace: str | None) -> T | None:
        try:
            return self._store.get(model, name, namespace)
        except ObjectNotFoundError:
            return None

    def _ensure(self, operation: str, desired: T, compare: Comparison[T]) -> EnsureResult[T]:
        model = type(desired)
        name, namespace = desired.name, desired.namespace
        log = self._log.bind(kind=desired.KIND, name=name, namespace=namespace)

        with reconcile_span(
            self._tracer, operation, kind=desired.KIND, name=name, namespace=namespace
        ) as span:
            current = self._current(model, name, namespace)

            if current is None:
                try:
                    self._store.create(desired)
                except RemoteStoreError as e:
                    raise ObjectCreateError(
                        desired.KIND, name, namespace, reason=e.message
                    ) from e
                log.info("rbac_object_created")
                span.set_attribute("rbac.action", ChangeType.CREATE.value)
                return self._refetch(model, name, namespace)

            changed, updated, reason = compare(current, desired)
            if not changed:
                span.set_attribute("rbac.action", ChangeType.UNCHANGED.value)
                return EnsureResult(exists=True, current=current)

            try:
                self._store.update(updated)
            except RemoteStoreError as e:
                raise ObjectUpdateError(
                    desired.KIND,
                    name,
                    namespace,
                    current=current,
                    change_reason=reason,
                    reason=e.message,
                ) from e
            log.info("rbac_object_updated", reason=reason)
            span.set_attribute("rbac.action", ChangeType.UPDATE.value)
            return self._refetch(model, name, namespace)

    def _refetch(self, model: type[T], name: str, namespace: str | None) -> EnsureResult[T]:
        stored = self._current(model, name, namespace)
        if stored is None:
            # Deleted between the write and the read-back; next pass recreates it
            self._log.warning(
                "rbac_object_missing_after_write", kind=model.KIND, name=name, namespace=namespace
            )
            return EnsureResult(exists=False, current=None)
        return EnsureResult(exists=True, current=stored)

    def _plan_one(self, desired: T, compare: Comparison[T]) -> ObjectDiff:
        current = self._current(type(desired), desired.name, desired.namespace)
        if current is None:
            change_type, reason = ChangeType.CREATE, ""
        else:
            changed, _, reason = compare(current, desired)
            change_type = ChangeType.UPDATE if changed else ChangeType.UNCHANGED
        return ObjectDiff(
            change_type=change_type,
            kind=desired.KIND,
            name=desired.name,
            namespace=desired.namespace,
            reason=reason,
        )


__all__ = ["EnsureResult", "RBACReconcileResult", "RBACReconciler"]
