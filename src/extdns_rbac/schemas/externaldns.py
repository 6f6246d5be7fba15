"""ExternalDNS workload declaration.

Only the fields the RBAC reconciler reads are modelled here: the instance name
(used to derive its service account name) and the configured source type
(which decides whether route read access is granted).

Example:
    >>> from extdns_rbac.schemas.externaldns import ExternalDNS, SourceType
    >>> extdns = ExternalDNS(name="sample", source_type=SourceType.ROUTE)
    >>> extdns.source_type.value
    'OpenShiftRoute'
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SourceType(str, Enum):
    """Kinds of source objects ExternalDNS publishes records for."""

    SERVICE = "Service"
    """Kubernetes Services."""

    ROUTE = "OpenShiftRoute"
    """OpenShift Routes; requires read access on route.openshift.io."""

    CRD = "CRD"
    """DNSEndpoint custom resources."""


class ExternalDNS(BaseModel):
    """Declared ExternalDNS instance.

    Attributes:
        name: Name of the ExternalDNS custom resource.
        source_type: Source the instance watches.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(
        ...,
        min_length=1,
        max_length=253,
        pattern=r"^[a-z0-9]([-a-z0-9.]*[a-z0-9])?$",
        description="ExternalDNS resource name",
        examples=["sample", "aws-public"],
    )
    source_type: SourceType = Field(
        default=SourceType.SERVICE,
        description="Source type watched by the instance",
    )


__all__ = ["ExternalDNS", "SourceType"]
