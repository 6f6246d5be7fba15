"""Pydantic models for RBAC objects, the ExternalDNS declaration and plans."""

from __future__ import annotations

from extdns_rbac.schemas.diff import ChangeType, ObjectDiff, PlanResult
from extdns_rbac.schemas.externaldns import ExternalDNS, SourceType
from extdns_rbac.schemas.rbac import (
    ClusterRole,
    ClusterRoleBinding,
    K8sObject,
    ObjectMeta,
    OwnerReference,
    PolicyRule,
    Role,
    RoleBinding,
    RoleRef,
    ServiceAccount,
    Subject,
)

__all__ = [
    "ChangeType",
    "ClusterRole",
    "ClusterRoleBinding",
    "ExternalDNS",
    "K8sObject",
    "ObjectDiff",
    "ObjectMeta",
    "OwnerReference",
    "PlanResult",
    "PolicyRule",
    "Role",
    "RoleBinding",
    "RoleRef",
    "ServiceAccount",
    "SourceType",
    "Subject",
]
