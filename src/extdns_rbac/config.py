"""Configuration for the RBAC reconciler.

Values are read from keyword arguments first, then from ``EXTDNS_RBAC_*``
environment variables, then from the defaults below.

Environment Variables:
    EXTDNS_RBAC_OPERATOR_NAMESPACE: Namespace the operator runs in.
    EXTDNS_RBAC_OPERAND_NAMESPACE: Namespace ExternalDNS instances run in.
    EXTDNS_RBAC_KUBECONFIG_PATH: Kubeconfig file; unset uses in-cluster config.
    EXTDNS_RBAC_CONTEXT: Kubeconfig context.
    EXTDNS_RBAC_LOG_LEVEL: Minimum log level.
    EXTDNS_RBAC_JSON_LOGS: Emit JSON logs instead of console output.

Example:
    >>> from extdns_rbac.config import ReconcilerConfig
    >>> config = ReconcilerConfig(operand_namespace="dns")
    >>> config.operator_namespace
    'external-dns-operator'
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NAMESPACE_PATTERN = r"^[a-z0-9][a-z0-9-]*[a-z0-9]$|^[a-z0-9]$"


class ReconcilerConfig(BaseSettings):
    """Runtime context of the RBAC reconciler.

    Attributes:
        operator_namespace: Namespace of the operator's own service account.
        operand_namespace: Namespace where ExternalDNS instances are deployed.
        kubeconfig_path: Path to kubeconfig file. None uses in-cluster config.
        context: Kubeconfig context to use. None uses current context.
        log_level: Minimum log level.
        json_logs: Render logs as JSON.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXTDNS_RBAC_",
        frozen=True,
        extra="ignore",
    )

    operator_namespace: str = Field(
        default="external-dns-operator",
        min_length=1,
        max_length=63,
        pattern=NAMESPACE_PATTERN,
        description="Namespace the operator runs in",
    )
    operand_namespace: str = Field(
        default="external-dns",
        min_length=1,
        max_length=63,
        pattern=NAMESPACE_PATTERN,
        description="Namespace ExternalDNS instances run in",
    )
    kubeconfig_path: str | None = Field(
        default=None,
        description="Path to kubeconfig file. None uses in-cluster config.",
        examples=["~/.kube/config"],
    )
    context: str | None = Field(
        default=None,
        description="Kubeconfig context to use. None uses current context.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level",
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON",
    )

    @field_validator("kubeconfig_path")
    @classmethod
    def expand_kubeconfig_path(cls, v: str | None) -> str | None:
        """Expand ~ in kubeconfig path."""
        if v is None:
            return None
        return str(Path(v).expanduser())

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Accept lower-case level names."""
        if isinstance(v, str):
            return v.upper()
        return v


__all__ = ["NAMESPACE_PATTERN", "ReconcilerConfig"]
