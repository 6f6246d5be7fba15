"""Remote object store backed by the Kubernetes API.

This is the only module that performs I/O. Reconcilers talk to the
``ObjectStore`` protocol; ``KubernetesObjectStore`` implements it with the
official ``kubernetes`` client, dispatching each kind to its API group client
through the ObjectScheme.

Errors:
    - A 404 on read raises ObjectNotFoundError.
    - Any other API or transport failure raises RemoteStoreError.

Example:
    >>> from extdns_rbac.config import ReconcilerConfig
    >>> from extdns_rbac.scheme import build_operator_scheme
    >>> from extdns_rbac.schemas.rbac import ClusterRole
    >>> load_kube_config(ReconcilerConfig())
    >>> store = KubernetesObjectStore(build_operator_scheme())
    >>> role = store.get(ClusterRole, "external-dns")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

import urllib3
from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException

from extdns_rbac.errors import ObjectNotFoundError, RemoteStoreError

if TYPE_CHECKING:
    from extdns_rbac.config import ReconcilerConfig
    from extdns_rbac.scheme import ObjectScheme, SchemeEntry
    from extdns_rbac.schemas.rbac import K8sObject

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="K8sObject")


class ObjectStore(Protocol):
    """Operations the reconcilers need from the remote object store."""

    def get(self, model: type[T], name: str, namespace: str | None = None) -> T:
        """Fetch an object; raise ObjectNotFoundError when it does not exist."""
        ...

    def create(self, obj: K8sObject) -> None:
        """Create an object."""
        ...

    def update(self, obj: K8sObject) -> None:
        """Replace an existing object."""
        ...

    def list_objects(self, model: type[T], namespace: str) -> list[T]:
        """List the objects of a kind in a namespace."""
        ...


def load_kube_config(config: ReconcilerConfig) -> None:
    """Load Kubernetes client configuration.

    Attempts to load configuration in this order:
    1. Explicit kubeconfig path from config
    2. In-cluster configuration
    3. Default kubeconfig (~/.kube/config)

    Args:
        config: Reconciler configuration.

    Raises:
        RemoteStoreError: If no configuration could be loaded.
    """
    try:
        if config.kubeconfig_path:
            k8s_config.load_kube_config(
                config_file=config.kubeconfig_path,
                context=config.context,
            )
            logger.info(
                "Loaded kubeconfig",
                extra={"kubeconfig_path": config.kubeconfig_path, "context": config.context},
            )
            return
        try:
            k8s_config.load_incluster_config()
            logger.info("Loaded in-cluster configuration")
        except k8s_config.ConfigException:
            k8s_config.load_kube_config(context=config.context)
            logger.info("Loaded default kubeconfig", extra={"context": config.context})
    except (k8s_config.ConfigException, OSError) as e:
        raise RemoteStoreError(
            "Configuration", "kubeconfig", operation="load", reason=str(e)
        ) from e


class KubernetesObjectStore:
    """ObjectStore implementation using the Kubernetes API.

    Attributes:
        scheme: Kinds this store can serve.

    Example:
        >>> store = KubernetesObjectStore(build_operator_scheme())
        >>> accounts = store.list_objects(ServiceAccount, "external-dns")
    """

    def __init__(
        self,
        scheme: ObjectScheme,
        *,
        api_client: Any = None,
        rbac_api: Any = None,
        core_api: Any = None,
    ) -> None:
        """Initialize the store.

        Args:
            scheme: Object scheme resolving kinds to API clients.
            api_client: Shared Kubernetes ApiClient. Created from the loaded
                configuration if None.
            rbac_api: RbacAuthorizationV1Api override.
            core_api: CoreV1Api override.
        """
        self.scheme = scheme
        self._api_client = api_client or client.ApiClient()
        self._apis: dict[str, Any] = {
            "rbac": rbac_api or client.RbacAuthorizationV1Api(self._api_client),
            "core": core_api or client.CoreV1Api(self._api_client),
        }

    def get(self, model: type[T], name: str, namespace: str | None = None) -> T:
        """Fetch an object by name.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            RemoteStoreError: On any other API failure.
        """
        entry = self.scheme.entry_for(model.KIND)
        kwargs: dict[str, Any] = {"name": name}
        if entry.namespaced:
            kwargs["namespace"] = namespace
        raw = self._call(entry, "read", name, namespace, **kwargs)
        return model.from_k8s_manifest(self._to_dict(raw))

    def create(self, obj: K8sObject) -> None:
        """Create an object.

        Raises:
            RemoteStoreError: If the API server rejects the create.
        """
        entry = self.scheme.entry_for(obj.KIND)
        kwargs: dict[str, Any] = {"body": obj.to_k8s_manifest()}
        if entry.namespaced:
            kwargs["namespace"] = obj.namespace
        self._call(entry, "create", obj.name, obj.namespace, **kwargs)

    def update(self, obj: K8sObject) -> None:
        """Replace an existing object.

        The object's resourceVersion is sent along so the API server rejects
        the write if the object changed since it was read.

        Raises:
            RemoteStoreError: If the API server rejects the update.
        """
        entry = self.scheme.entry_for(obj.KIND)
        kwargs: dict[str, Any] = {"name": obj.name, "body": obj.to_k8s_manifest()}
        if entry.namespaced:
            kwargs["namespace"] = obj.namespace
        self._call(entry, "replace", obj.name, obj.namespace, **kwargs)

    def list_objects(self, model: type[T], namespace: str) -> list[T]:
        """List the objects of a namespaced kind.

        Raises:
            RemoteStoreError: On any API failure.
        """
        entry = self.scheme.entry_for(model.KIND)
        raw = self._call(entry, "list", "", namespace, namespace=namespace)
        return [model.from_k8s_manifest(self._to_dict(item)) for item in raw.items or []]

    def _call(
        self,
        entry: SchemeEntry,
        verb: str,
        name: str,
        namespace: str | None,
        /,
        **kwargs: Any,
    ) -> Any:
        # name and namespace are error context; kwargs go to the client unchanged
        method = getattr(self._apis[entry.api], entry.method_name(verb))
        try:
            return method(**kwargs)
        except ApiException as e:
            if e.status == 404 and verb == "read":
                raise ObjectNotFoundError(entry.kind, name, namespace) from e
            raise RemoteStoreError(
                entry.kind,
                name,
                namespace,
                operation=verb,
                status=e.status,
                reason=str(e.reason or e),
            ) from e
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise RemoteStoreError(
                entry.kind, name, namespace, operation=verb, reason=str(e)
            ) from e

    def _to_dict(self, raw: Any) -> dict[str, Any]:
        if isinstance(raw, dict):
            return raw
        data: dict[str, Any] = self._api_client.sanitize_for_serialization(raw)
        return data


__all__ = ["KubernetesObjectStore", "ObjectStore", "load_kube_config"]
