"""Stable names for the operator's service identities and shared objects.

Example:
    >>> from extdns_rbac.naming import external_dns_resource_name
    >>> from extdns_rbac.schemas.externaldns import ExternalDNS
    >>> external_dns_resource_name(ExternalDNS(name="sample"))
    'external-dns-sample'
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from extdns_rbac.schemas.externaldns import ExternalDNS

EXTERNAL_DNS_BASE_NAME = "external-dns"
"""Name of the cluster role and cluster role binding shared by all instances."""

OPERATOR_SERVICE_ACCOUNT_NAME = "external-dns-operator"
"""Service account the operator itself runs as."""

EXTERNAL_DNS_OWNER_KIND = "ExternalDNS"
"""Owner reference kind marking a service account as owned by an instance."""

MANAGED_BY_VALUE = "external-dns-operator"


def external_dns_resource_name(extdns: ExternalDNS) -> str:
    """Return the name of the per-instance objects (service account, deployment)."""
    return f"{EXTERNAL_DNS_BASE_NAME}-{extdns.name}"


def external_dns_global_resource_name() -> str:
    """Return the name of the cluster-scoped objects shared by all instances."""
    return EXTERNAL_DNS_BASE_NAME


__all__ = [
    "EXTERNAL_DNS_BASE_NAME",
    "EXTERNAL_DNS_OWNER_KIND",
    "MANAGED_BY_VALUE",
    "OPERATOR_SERVICE_ACCOUNT_NAME",
    "external_dns_global_resource_name",
    "external_dns_resource_name",
]
