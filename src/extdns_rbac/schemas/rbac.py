"""Kubernetes RBAC object models.

This module defines the Pydantic models for the four RBAC object shapes the
operator manages (Role, ClusterRole, RoleBinding, ClusterRoleBinding) plus the
ServiceAccount shape used for the owned-identity lookup.

Every object model round-trips through the Kubernetes API representation:
``to_k8s_manifest()`` produces the camelCase body accepted by the API server
and ``from_k8s_manifest()`` parses what the API server returns, including the
server-populated metadata fields (uid, resourceVersion, creationTimestamp).

Models are frozen. An update is always derived with ``model_copy(update=...)``
so the fetched object is never mutated in place.

A parsed object keeps the manifest it was parsed from. ``to_k8s_manifest()``
writes the modelled fields over a copy of that manifest, so a replace sends
back every field the API server returned (aggregationRule, managedFields,
generation and so on) with only the modelled fields changed.

Example:
    >>> from extdns_rbac.schemas.rbac import ClusterRole, ObjectMeta, PolicyRule
    >>> role = ClusterRole(
    ...     metadata=ObjectMeta(name="external-dns"),
    ...     rules=[PolicyRule(api_groups=[""], resources=["pods"], verbs=["get"])],
    ... )
    >>> role.to_k8s_manifest()["kind"]
    'ClusterRole'
"""

from __future__ import annotations

import copy
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

RBAC_API_GROUP = "rbac.authorization.k8s.io"
RBAC_API_VERSION = f"{RBAC_API_GROUP}/v1"
SERVICE_ACCOUNT_KIND = "ServiceAccount"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"

# ObjectMeta keys rendered from the model; all others pass through from the source
_MODELLED_METADATA_KEYS = (
    "name",
    "namespace",
    "labels",
    "annotations",
    "ownerReferences",
    "finalizers",
    "uid",
    "resourceVersion",
    "creationTimestamp",
)


def _strings(value: Any) -> list[str]:
    """Normalise a possibly-null API list into a list of strings."""
    return [str(v) for v in value or []]


# =============================================================================
# Rule, Subject and Reference Shapes
# =============================================================================


class PolicyRule(BaseModel):
    """A single permission rule.

    Attributes:
        api_groups: API groups the rule applies to ([""] for the core group).
        resources: Resource types (e.g., ["pods", "secrets"]).
        verbs: Allowed operations (e.g., ["get", "list"]).
        resource_names: Optional allow-list of object names.
        non_resource_urls: Non-resource URLs (only seen on observed rules).

    Example:
        >>> rule = PolicyRule(api_groups=["apps"], resources=["deployments"], verbs=["get"])
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_groups: list[str] = Field(
        default_factory=lambda: [""],
        description="API groups the rule applies to",
    )
    resources: list[str] = Field(
        default_factory=list,
        description="Resource types",
    )
    verbs: list[str] = Field(
        default_factory=list,
        description="Allowed operations",
    )
    resource_names: list[str] | None = Field(
        default=None,
        description="Specific resource names to restrict to",
    )
    non_resource_urls: list[str] | None = Field(
        default=None,
        description="Non-resource URLs",
    )

    def to_k8s_manifest(self) -> dict[str, Any]:
        """Convert to the API representation of a PolicyRule."""
        rule: dict[str, Any] = {
            "apiGroups": list(self.api_groups),
            "resources": list(self.resources),
            "verbs": list(self.verbs),
        }
        if self.resource_names:
            rule["resourceNames"] = list(self.resource_names)
        if self.non_resource_urls:
            rule["nonResourceURLs"] = list(self.non_resource_urls)
        return rule

    @classmethod
    def from_k8s_manifest(cls, data: dict[str, Any]) -> Self:
        """Parse the API representation of a PolicyRule."""
        return cls(
            api_groups=_strings(data.get("apiGroups")),
            resources=_strings(data.get("resources")),
            verbs=_strings(data.get("verbs")),
            resource_names=data.get("resourceNames") or None,
            non_resource_urls=data.get("nonResourceURLs") or None,
        )


class Subject(BaseModel):
    """A principal eligible to use a binding's referenced role.

    Attributes:
        kind: Subject kind (always ServiceAccount for desired bindings).
        name: Subject name.
        namespace: Namespace of the subject (None for User/Group subjects).
        api_group: API group of the subject kind ("" for ServiceAccount).

    Example:
        >>> Subject(name="external-dns-sample", namespace="external-dns").key
        'external-dns-sample-external-dns'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: str = Field(default=SERVICE_ACCOUNT_KIND, description="Subject kind")
    name: str = Field(..., min_length=1, description="Subject name")
    namespace: str | None = Field(default=None, description="Subject namespace")
    api_group: str = Field(default="", description="Subject API group")

    @property
    def key(self) -> str:
        """Uniqueness key of the subject within a binding."""
        return f"{self.name}-{self.namespace or ''}"

    def to_k8s_manifest(self) -> dict[str, Any]:
        """Convert to the API representation of a Subject."""
        subject: dict[str, Any] = {"kind": self.kind, "name": self.name}
        if self.namespace:
            subject["namespace"] = self.namespace
        if self.api_group:
            subject["apiGroup"] = self.api_group
        return subject

    @classmethod
    def from_k8s_manifest(cls, data: dict[str, Any]) -> Self:
        """Parse the API representation of a Subject."""
        return cls(
            kind=data.get("kind") or SERVICE_ACCOUNT_KIND,
            name=data["name"],
            namespace=data.get("namespace") or None,
            api_group=data.get("apiGroup") or "",
        )


class RoleRef(BaseModel):
    """Reference from a binding to exactly one Role or ClusterRole."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_group: str = Field(default=RBAC_API_GROUP, description="Role API group")
    kind: str = Field(..., description="Role or ClusterRole")
    name: str = Field(..., min_length=1, description="Referenced role name")

    def to_k8s_manifest(self) -> dict[str, Any]:
        """Convert to the API representation of a RoleRef."""
        return {"apiGroup": self.api_group, "kind": self.kind, "name": self.name}

    @classmethod
    def from_k8s_manifest(cls, data: dict[str, Any]) -> Self:
        """Parse the API representation of a RoleRef."""
        return cls(
            api_group=data.get("apiGroup") or RBAC_API_GROUP,
            kind=data["kind"],
            name=data["name"],
        )


class OwnerReference(BaseModel):
    """Owner reference recorded in an object's metadata."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_version: str = Field(..., description="Owner API version")
    kind: str = Field(..., description="Owner kind")
    name: str = Field(..., description="Owner name")
    uid: str = Field(..., description="Owner UID")
    controller: bool | None = Field(default=None, description="Owner is the controller")
    block_owner_deletion: bool | None = Field(
        default=None,
        description="Owner cannot be deleted before this object",
    )

    def to_k8s_manifest(self) -> dict[str, Any]:
        """Convert to the API representation of an OwnerReference."""
        ref: dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
        }
        if self.controller is not None:
            ref["controller"] = self.controller
        if self.block_owner_deletion is not None:
            ref["blockOwnerDeletion"] = self.block_owner_deletion
        return ref

    @classmethod
    def from_k8s_manifest(cls, data: dict[str, Any]) -> Self:
        """Parse the API representation of an OwnerReference."""
        return cls(
            api_version=data.get("apiVersion", ""),
            kind=data.get("kind", ""),
            name=data.get("name", ""),
            uid=data.get("uid", ""),
            controller=data.get("controller"),
            block_owner_deletion=data.get("blockOwnerDeletion"),
        )


class ObjectMeta(BaseModel):
    """Object metadata.

    ``uid``, ``resource_version`` and ``creation_timestamp`` are populated by
    the API server and are only present on fetched objects. ``resource_version``
    is echoed back on update so the server can reject stale writes.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Object name")
    namespace: str | None = Field(default=None, description="Object namespace")
    labels: dict[str, str] = Field(default_factory=dict, description="Labels")
    annotations: dict[str, str] = Field(default_factory=dict, description="Annotations")
    owner_references: list[OwnerReference] = Field(
        default_factory=list,
        description="Owner references",
    )
    finalizers: list[str] = Field(default_factory=list, description="Finalizers")
    uid: str | None = Field(default=None, description="Server-assigned UID")
    resource_version: str | None = Field(default=None, description="Server resourceVersion")
    creation_timestamp: str | None = Field(default=None, description="Server creation time")

    def to_k8s_manifest(self) -> dict[str, Any]:
        """Convert to the API representation of ObjectMeta."""
        meta: dict[str, Any] = {"name": self.name}
        if self.namespace:
            meta["namespace"] = self.namespace
        if self.labels:
            meta["labels"] = dict(self.labels)
        if self.annotations:
            meta["annotations"] = dict(self.annotations)
        if self.owner_references:
            meta["ownerReferences"] = [ref.to_k8s_manifest() for ref in self.owner_references]
        if self.finalizers:
            meta["finalizers"] = list(self.finalizers)
        if self.uid:
            meta["uid"] = self.uid
        if self.resource_version:
            meta["resourceVersion"] = self.resource_version
        if self.creation_timestamp:
            meta["creationTimestamp"] = self.creation_timestamp
        return meta

    @classmethod
    def from_k8s_manifest(cls, data: dict[str, Any]) -> Self:
        """Parse the API representation of ObjectMeta."""
        created = data.get("creationTimestamp")
        return cls(
            name=data["name"],
            namespace=data.get("namespace") or None,
            labels=dict(data.get("labels") or {}),
            annotations=dict(data.get("annotations") or {}),
            owner_references=[
                OwnerReference.from_k8s_manifest(ref) for ref in data.get("ownerReferences") or []
            ],
            finalizers=_strings(data.get("finalizers")),
            uid=data.get("uid"),
            resource_version=data.get("resourceVersion"),
            creation_timestamp=str(created) if created is not None else None,
        )


# =============================================================================
# Object Shapes
# =============================================================================


class K8sObject(BaseModel):
    """Base class for the stored object shapes.

    Subclasses declare ``KIND`` and ``API_VERSION`` and implement
    ``_spec_manifest`` / ``_spec_fields`` for their kind-specific fields.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    KIND: ClassVar[str] = ""
    API_VERSION: ClassVar[str] = RBAC_API_VERSION

    metadata: ObjectMeta

    # Manifest this object was parsed from; None for locally built objects
    _source: dict[str, Any] | None = PrivateAttr(default=None)

    @property
    def name(self) -> str:
        """Object name."""
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        """Object namespace (None for cluster-scoped objects)."""
        return self.metadata.namespace

    def to_k8s_manifest(self) -> dict[str, Any]:
        """Convert to a manifest dict accepted by the Kubernetes API.

        For a parsed object, fields the model does not carry are taken
        unchanged from the manifest it was parsed from.
        """
        manifest: dict[str, Any] = copy.deepcopy(self._source) if self._source else {}
        metadata: dict[str, Any] = manifest.get("metadata") or {}
        for key in _MODELLED_METADATA_KEYS:
            metadata.pop(key, None)
        metadata.update(self.metadata.to_k8s_manifest())

        manifest.update(
            {
                "apiVersion": self.API_VERSION,
                "kind": self.KIND,
                "metadata": metadata,
            }
        )
        manifest.update(self._spec_manifest())
        return manifest

    @classmethod
    def from_k8s_manifest(cls, data: dict[str, Any]) -> Self:
        """Parse an object returned by the Kubernetes API.

        Args:
            data: camelCase dictionary (as produced by the API client's
                ``sanitize_for_serialization``).

        Returns:
            Parsed, frozen object model carrying a copy of ``data``.
        """
        obj = cls(
            metadata=ObjectMeta.from_k8s_manifest(data.get("metadata") or {}),
            **cls._spec_fields(data),
        )
        obj._source = copy.deepcopy(data)
        return obj

    def _spec_manifest(self) -> dict[str, Any]:
        return {}

    @classmethod
    def _spec_fields(cls, data: dict[str, Any]) -> dict[str, Any]:  # noqa: ARG003
        return {}


class _RuleHolder(K8sObject):
    rules: list[PolicyRule] = Field(default_factory=list, description="Permission rules")

    def _spec_manifest(self) -> dict[str, Any]:
        return {"rules": [rule.to_k8s_manifest() for rule in self.rules]}

    @classmethod
    def _spec_fields(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {"rules": [PolicyRule.from_k8s_manifest(r) for r in data.get("rules") or []]}


class _BindingHolder(K8sObject):
    role_ref: RoleRef
    subjects: list[Subject] = Field(default_factory=list, description="Bound subjects")

    def _spec_manifest(self) -> dict[str, Any]:
        return {
            "roleRef": self.role_ref.to_k8s_manifest(),
            "subjects": [subject.to_k8s_manifest() for subject in self.subjects],
        }

    @classmethod
    def _spec_fields(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "role_ref": RoleRef.from_k8s_manifest(data["roleRef"]),
            "subjects": [Subject.from_k8s_manifest(s) for s in data.get("subjects") or []],
        }


class Role(_RuleHolder):
    """Namespaced set of permission rules."""

    KIND: ClassVar[str] = "Role"


class ClusterRole(_RuleHolder):
    """Cluster-scoped set of permission rules."""

    KIND: ClassVar[str] = "ClusterRole"


class RoleBinding(_BindingHolder):
    """Namespaced grant of a Role to a list of subjects."""

    KIND: ClassVar[str] = "RoleBinding"


class ClusterRoleBinding(_BindingHolder):
    """Cluster-scoped grant of a ClusterRole to a list of subjects."""

    KIND: ClassVar[str] = "ClusterRoleBinding"


class ServiceAccount(K8sObject):
    """Service account; only its metadata is read by the operator."""

    KIND: ClassVar[str] = "ServiceAccount"
    API_VERSION: ClassVar[str] = "v1"


__all__ = [
    "MANAGED_BY_LABEL",
    "RBAC_API_GROUP",
    "RBAC_API_VERSION",
    "SERVICE_ACCOUNT_KIND",
    "ClusterRole",
    "ClusterRoleBinding",
    "K8sObject",
    "ObjectMeta",
    "OwnerReference",
    "PolicyRule",
    "Role",
    "RoleBinding",
    "RoleRef",
    "ServiceAccount",
    "Subject",
]
