"""Pytest configuration for extdns-rbac tests.

Fixtures:
    - extdns / route_extdns: ExternalDNS declarations
    - reconciler_config: ReconcilerConfig with test namespaces
    - store: InMemoryObjectStore standing in for the API server
    - reconciler: RBACReconciler wired to the in-memory store
    - make_service_account: Factory for (owned) service accounts
    - cli_runner: Click test runner
"""

from __future__ import annotations

import itertools
import os
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

import pytest
from click.testing import CliRunner
from opentelemetry import trace

from extdns_rbac.config import ReconcilerConfig
from extdns_rbac.errors import ObjectNotFoundError, RemoteStoreError
from extdns_rbac.naming import EXTERNAL_DNS_OWNER_KIND
from extdns_rbac.reconciler import RBACReconciler
from extdns_rbac.schemas.externaldns import ExternalDNS, SourceType
from extdns_rbac.schemas.rbac import K8sObject, ObjectMeta, OwnerReference, ServiceAccount

if TYPE_CHECKING:
    from collections.abc import Generator

OPERAND_NAMESPACE = "external-dns"
OPERATOR_NAMESPACE = "external-dns-operator"

T = TypeVar("T", bound=K8sObject)


# =============================================================================
# In-Memory Object Store
# =============================================================================


class InMemoryObjectStore:
    """Dict-backed ObjectStore mimicking the API server's write semantics.

    - create assigns uid, resourceVersion and creationTimestamp
    - create of an existing object fails with 409 AlreadyExists
    - update of a missing object fails with 404
    - update with a stale resourceVersion fails with 409 Conflict
    - every successful write is appended to ``writes``
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str | None, str], K8sObject] = {}
        self._versions = itertools.count(1)
        self.writes: list[tuple[str, str, str, str | None]] = []

    @staticmethod
    def _key(kind: str, name: str, namespace: str | None) -> tuple[str, str | None, str]:
        return (kind, namespace, name)

    def _stamp(self, obj: K8sObject, uid: str) -> K8sObject:
        metadata = obj.metadata.model_copy(
            update={
                "uid": uid,
                "resource_version": str(next(self._versions)),
                "creation_timestamp": obj.metadata.creation_timestamp
                or "2026-01-01T00:00:00Z",
            }
        )
        return obj.model_copy(update={"metadata": metadata})

    def seed(self, *objects: K8sObject) -> None:
        """Store objects as if created earlier, without recording writes."""
        for obj in objects:
            key = self._key(obj.KIND, obj.name, obj.namespace)
            self._objects[key] = self._stamp(obj, obj.metadata.uid or str(uuid.uuid4()))

    def get(self, model: type[T], name: str, namespace: str | None = None) -> T:
        obj = self._objects.get(self._key(model.KIND, name, namespace))
        if obj is None:
            raise ObjectNotFoundError(model.KIND, name, namespace)
        return obj

    def create(self, obj: K8sObject) -> None:
        key = self._key(obj.KIND, obj.name, obj.namespace)
        if key in self._objects:
            raise RemoteStoreError(
                obj.KIND,
                obj.name,
                obj.namespace,
                operation="create",
                status=409,
                reason="AlreadyExists",
            )
        self._objects[key] = self._stamp(obj, str(uuid.uuid4()))
        self.writes.append(("create", obj.KIND, obj.name, obj.namespace))

    def update(self, obj: K8sObject) -> None:
        key = self._key(obj.KIND, obj.name, obj.namespace)
        existing = self._objects.get(key)
        if existing is None:
            raise RemoteStoreError(
                obj.KIND,
                obj.name,
                obj.namespace,
                operation="replace",
                status=404,
                reason="NotFound",
            )
        if obj.metadata.resource_version != existing.metadata.resource_version:
            raise RemoteStoreError(
                obj.KIND,
                obj.name,
                obj.namespace,
                operation="replace",
                status=409,
                reason="Conflict",
            )
        self._objects[key] = self._stamp(obj, existing.metadata.uid or str(uuid.uuid4()))
        self.writes.append(("update", obj.KIND, obj.name, obj.namespace))

    def list_objects(self, model: type[T], namespace: str) -> list[T]:
        return [
            obj
            for (kind, ns, _), obj in self._objects.items()
            if kind == model.KIND and ns == namespace
        ]

    def delete(self, kind: str, name: str, namespace: str | None = None) -> None:
        """Remove an object, as the garbage collector or a user would."""
        self._objects.pop(self._key(kind, name, namespace), None)


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Remove EXTDNS_RBAC_* variables so configuration uses its defaults."""
    for key in list(os.environ):
        if key.startswith("EXTDNS_RBAC_"):
            monkeypatch.delenv(key)
    yield


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def extdns() -> ExternalDNS:
    """ExternalDNS instance watching Services."""
    return ExternalDNS(name="sample")


@pytest.fixture
def route_extdns() -> ExternalDNS:
    """ExternalDNS instance watching OpenShift Routes."""
    return ExternalDNS(name="routes", source_type=SourceType.ROUTE)


@pytest.fixture
def reconciler_config() -> ReconcilerConfig:
    """ReconcilerConfig with the default namespaces."""
    return ReconcilerConfig(
        operand_namespace=OPERAND_NAMESPACE,
        operator_namespace=OPERATOR_NAMESPACE,
    )


@pytest.fixture
def store() -> InMemoryObjectStore:
    """Empty in-memory object store."""
    return InMemoryObjectStore()


@pytest.fixture
def reconciler(store: InMemoryObjectStore, reconciler_config: ReconcilerConfig) -> RBACReconciler:
    """RBACReconciler backed by the in-memory store."""
    return RBACReconciler(store, reconciler_config, tracer=trace.NoOpTracer())


@pytest.fixture
def make_service_account() -> Callable[..., ServiceAccount]:
    """Factory for service accounts, optionally owned by an ExternalDNS instance."""

    def _make(
        name: str,
        namespace: str = OPERAND_NAMESPACE,
        owner_kind: str | None = EXTERNAL_DNS_OWNER_KIND,
    ) -> ServiceAccount:
        owners = []
        if owner_kind is not None:
            owners.append(
                OwnerReference(
                    api_version="externaldns.olm.openshift.io/v1beta1",
                    kind=owner_kind,
                    name=name.removeprefix("external-dns-"),
                    uid=str(uuid.uuid4()),
                    controller=True,
                )
            )
        return ServiceAccount(
            metadata=ObjectMeta(name=name, namespace=namespace, owner_references=owners)
        )

    return _make


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()
