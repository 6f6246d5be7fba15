"""Object scheme: the set of kinds the operator can read and write.

An ObjectScheme maps each kind to its model class and to the Kubernetes API
group client and resource name used to serve it. A scheme is built once at
process start with ``build_operator_scheme()`` and handed to the object store;
it cannot be modified afterwards; ``with_entries`` returns a new scheme.

Example:
    >>> from extdns_rbac.scheme import build_operator_scheme
    >>> scheme = build_operator_scheme()
    >>> scheme.entry_for("ClusterRole").namespaced
    False
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

from extdns_rbac.errors import SchemeRegistrationError
from extdns_rbac.schemas.rbac import (
    ClusterRole,
    ClusterRoleBinding,
    K8sObject,
    Role,
    RoleBinding,
    ServiceAccount,
)


@dataclass(frozen=True)
class SchemeEntry:
    """How a single kind is modelled and served.

    Attributes:
        kind: Object kind.
        model: Model class parsing and serialising the kind.
        resource: Resource name as used in the API client's method names
            (e.g. ``cluster_role`` for ``read_cluster_role``).
        namespaced: Whether objects of this kind live in a namespace.
        api: API group client serving the kind.
    """

    kind: str
    model: type[K8sObject]
    resource: str
    namespaced: bool
    api: Literal["rbac", "core"] = "rbac"

    def method_name(self, verb: str) -> str:
        """Return the API client method for ``verb`` (read, create, replace, list)."""
        scope = "namespaced_" if self.namespaced else ""
        return f"{verb}_{scope}{self.resource}"


class ObjectScheme(Mapping[str, SchemeEntry]):
    """Immutable mapping from kind to SchemeEntry."""

    def __init__(self, entries: Iterable[SchemeEntry] = ()) -> None:
        registered: dict[str, SchemeEntry] = {}
        for entry in entries:
            if entry.kind in registered:
                raise SchemeRegistrationError(entry.kind)
            registered[entry.kind] = entry
        self._entries: Mapping[str, SchemeEntry] = MappingProxyType(registered)

    def __getitem__(self, kind: str) -> SchemeEntry:
        return self._entries[kind]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def entry_for(self, kind: str) -> SchemeEntry:
        """Return the entry for ``kind``.

        Raises:
            LookupError: If the kind is not registered.
        """
        try:
            return self._entries[kind]
        except KeyError:
            msg = f"kind '{kind}' is not registered in the object scheme"
            raise LookupError(msg) from None

    def with_entries(self, *entries: SchemeEntry) -> ObjectScheme:
        """Return a new scheme with ``entries`` added.

        Raises:
            SchemeRegistrationError: If a kind is already registered.
        """
        return ObjectScheme([*self._entries.values(), *entries])


def build_operator_scheme() -> ObjectScheme:
    """Build the scheme with every kind the RBAC reconciler touches."""
    return ObjectScheme(
        [
            SchemeEntry(kind="Role", model=Role, resource="role", namespaced=True),
            SchemeEntry(
                kind="RoleBinding", model=RoleBinding, resource="role_binding", namespaced=True
            ),
            SchemeEntry(
                kind="ClusterRole", model=ClusterRole, resource="cluster_role", namespaced=False
            ),
            SchemeEntry(
                kind="ClusterRoleBinding",
                model=ClusterRoleBinding,
                resource="cluster_role_binding",
                namespaced=False,
            ),
            SchemeEntry(
                kind="ServiceAccount",
                model=ServiceAccount,
                resource="service_account",
                namespaced=True,
                api="core",
            ),
        ]
    )


__all__ = ["ObjectScheme", "SchemeEntry", "build_operator_scheme"]
