"""Desired state of the RBAC objects managed for an ExternalDNS instance.

Every function here is pure: the desired object is recomputed from the
ExternalDNS declaration and its runtime context on every reconcile pass and
never read back from the cluster.

Objects built here:

- Operator Role (operand namespace): lets the operator manage the secrets,
  service accounts and deployments of its operands.
- Operator RoleBinding (operand namespace): grants that Role to the operator's
  own service account, which lives in the operator namespace.
- ExternalDNS ClusterRole: read access to the sources ExternalDNS watches.
- ExternalDNS ClusterRoleBinding: grants the ClusterRole to every ExternalDNS
  service account in the operand namespace.

Example:
    >>> from extdns_rbac.desired import desired_cluster_role
    >>> from extdns_rbac.schemas.externaldns import ExternalDNS, SourceType
    >>> role = desired_cluster_role(ExternalDNS(name="sample", source_type=SourceType.ROUTE))
    >>> [rule.resources for rule in role.rules][-1]
    ['routes']
"""

from __future__ import annotations

from collections.abc import Iterable

from extdns_rbac.compare import validate_rule_set
from extdns_rbac.naming import (
    MANAGED_BY_VALUE,
    OPERATOR_SERVICE_ACCOUNT_NAME,
    external_dns_global_resource_name,
    external_dns_resource_name,
)
from extdns_rbac.schemas.externaldns import ExternalDNS, SourceType
from extdns_rbac.schemas.rbac import (
    MANAGED_BY_LABEL,
    RBAC_API_GROUP,
    SERVICE_ACCOUNT_KIND,
    ClusterRole,
    ClusterRoleBinding,
    ObjectMeta,
    PolicyRule,
    Role,
    RoleBinding,
    RoleRef,
    Subject,
)

OPERAND_MANAGEMENT_VERBS = ["get", "list", "watch", "create", "update", "delete"]
READ_VERBS = ["get", "list", "watch"]


def _labels() -> dict[str, str]:
    return {MANAGED_BY_LABEL: MANAGED_BY_VALUE}


def desired_operator_role(name: str, namespace: str) -> Role:
    """Build the Role the operator needs inside the operand namespace.

    Args:
        name: Role name.
        namespace: Operand namespace.

    Returns:
        Role granting full management of secrets, service accounts and
        deployments.
    """
    rules = [
        PolicyRule(api_groups=[""], resources=["secrets"], verbs=OPERAND_MANAGEMENT_VERBS),
        PolicyRule(api_groups=[""], resources=["serviceaccounts"], verbs=OPERAND_MANAGEMENT_VERBS),
        PolicyRule(api_groups=["apps"], resources=["deployments"], verbs=OPERAND_MANAGEMENT_VERBS),
    ]
    validate_rule_set(rules)
    return Role(
        metadata=ObjectMeta(name=name, namespace=namespace, labels=_labels()),
        rules=rules,
    )


def desired_cluster_role(extdns: ExternalDNS) -> ClusterRole:
    """Build the ClusterRole shared by all ExternalDNS instances.

    Route read access is only granted when the instance's source is
    OpenShift routes.

    Args:
        extdns: Declared ExternalDNS instance.

    Returns:
        ClusterRole with read access to the watched sources.
    """
    rules = [
        PolicyRule(api_groups=["networking.k8s.io"], resources=["ingresses"], verbs=READ_VERBS),
        PolicyRule(
            api_groups=[""],
            resources=["endpoints", "services", "pods", "nodes"],
            verbs=READ_VERBS,
        ),
    ]
    if extdns.source_type == SourceType.ROUTE:
        rules.append(
            PolicyRule(
                api_groups=["route.openshift.io"],
                resources=["routes"],
                verbs=["get", "watch", "list"],
            )
        )
    validate_rule_set(rules)
    return ClusterRole(
        metadata=ObjectMeta(name=external_dns_global_resource_name(), labels=_labels()),
        rules=rules,
    )


def desired_operator_role_binding(
    name: str,
    namespace: str,
    operator_namespace: str,
) -> RoleBinding:
    """Build the RoleBinding granting the operator Role to the operator.

    The subject is the operator's own service account, qualified by the
    operator namespace rather than the operand namespace the binding lives in.

    Args:
        name: Binding name; also the name of the referenced Role.
        namespace: Operand namespace.
        operator_namespace: Namespace the operator runs in.

    Returns:
        RoleBinding with a single subject.
    """
    return RoleBinding(
        metadata=ObjectMeta(name=name, namespace=namespace, labels=_labels()),
        role_ref=RoleRef(api_group=RBAC_API_GROUP, kind="Role", name=name),
        subjects=[
            Subject(
                kind=SERVICE_ACCOUNT_KIND,
                name=OPERATOR_SERVICE_ACCOUNT_NAME,
                namespace=operator_namespace,
            )
        ],
    )


def desired_cluster_role_binding(
    namespace: str,
    extdns: ExternalDNS,
    owned_service_accounts: Iterable[str],
) -> ClusterRoleBinding:
    """Build the ClusterRoleBinding shared by all ExternalDNS instances.

    The first subject is the service account of ``extdns``. Every other
    service account owned by an ExternalDNS instance in the operand namespace
    follows, once each, in the order given.

    Args:
        namespace: Operand namespace.
        extdns: ExternalDNS instance being reconciled.
        owned_service_accounts: Names of the service accounts in ``namespace``
            owned by any ExternalDNS instance.

    Returns:
        ClusterRoleBinding referencing the shared ClusterRole.
    """
    primary = external_dns_resource_name(extdns)
    subjects = [Subject(kind=SERVICE_ACCOUNT_KIND, name=primary, namespace=namespace)]
    for name in dict.fromkeys(owned_service_accounts):
        if name != primary:
            subjects.append(Subject(kind=SERVICE_ACCOUNT_KIND, name=name, namespace=namespace))

    shared_name = external_dns_global_resource_name()
    return ClusterRoleBinding(
        metadata=ObjectMeta(name=shared_name, labels=_labels()),
        role_ref=RoleRef(api_group=RBAC_API_GROUP, kind="ClusterRole", name=shared_name),
        subjects=subjects,
    )


__all__ = [
    "OPERAND_MANAGEMENT_VERBS",
    "READ_VERBS",
    "desired_cluster_role",
    "desired_cluster_role_binding",
    "desired_operator_role",
    "desired_operator_role_binding",
]
