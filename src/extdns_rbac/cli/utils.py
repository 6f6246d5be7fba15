"""CLI utility functions and error handling.

Errors are written as plain text to stderr and the process exits with a
code from ``ExitCode`` so scripts and CI jobs can tell failures apart.

Example:
    from extdns_rbac.cli.utils import error_exit, ExitCode

    error_exit("Cluster unreachable", exit_code=ExitCode.NETWORK_ERROR, status=503)
"""

from __future__ import annotations

import sys
from enum import IntEnum
from typing import TYPE_CHECKING

import click

from extdns_rbac.errors import (
    ObjectCreateError,
    ObjectUpdateError,
    OverlappingRulesError,
    RBACReconcileError,
    RemoteStoreError,
)

if TYPE_CHECKING:
    from typing import NoReturn


class ExitCode(IntEnum):
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    """Command completed successfully."""

    GENERAL_ERROR = 1
    """General error (catch-all for failures)."""

    USAGE_ERROR = 2
    """Invalid usage (bad arguments, missing required options)."""

    PERMISSION_ERROR = 4
    """The API server refused the request (401/403)."""

    VALIDATION_ERROR = 5
    """Configuration or desired state failed validation."""

    RECONCILE_ERROR = 7
    """A create or update of an RBAC object failed."""

    NETWORK_ERROR = 8
    """The API server could not be reached or returned an error."""


def exit_code_for(exc: RBACReconcileError) -> ExitCode:
    """Map a reconcile error to the exit code reported for it."""
    if isinstance(exc, RemoteStoreError):
        if exc.status in (401, 403):
            return ExitCode.PERMISSION_ERROR
        return ExitCode.NETWORK_ERROR
    if isinstance(exc, (ObjectCreateError, ObjectUpdateError)):
        return ExitCode.RECONCILE_ERROR
    if isinstance(exc, OverlappingRulesError):
        return ExitCode.VALIDATION_ERROR
    return ExitCode.GENERAL_ERROR


def error(message: str, **context: str | int | bool | None) -> None:
    """Print an error message to stderr.

    Args:
        message: Error message to display.
        **context: Optional context key-value pairs to include.

    Example:
        error("ClusterRole not updated", name="external-dns")
        # Output: Error: ClusterRole not updated (name=external-dns)
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items() if v is not None)
        full_message = f"Error: {message} ({context_str})"
    else:
        full_message = f"Error: {message}"

    click.echo(full_message, err=True)


def error_exit(
    message: str,
    exit_code: ExitCode = ExitCode.GENERAL_ERROR,
    **context: str | int | bool | None,
) -> NoReturn:
    """Print an error message to stderr and exit with a code.

    Args:
        message: Error message to display.
        exit_code: Exit code to use (default: GENERAL_ERROR).
        **context: Optional context key-value pairs to include.

    Raises:
        SystemExit: Always exits with the specified code.
    """
    error(message, **context)
    sys.exit(exit_code)


def warn(message: str) -> None:
    """Print a warning message to stderr."""
    click.echo(f"Warning: {message}", err=True)


# Alias for warn
warning = warn


def success(message: str) -> None:
    """Print a success message to stdout."""
    click.echo(message)


def info(message: str) -> None:
    """Print an informational message to stderr.

    Used for progress updates that should not be captured by stdout
    redirection.
    """
    click.echo(message, err=True)


__all__ = [
    "ExitCode",
    "error",
    "error_exit",
    "exit_code_for",
    "info",
    "success",
    "warn",
    "warning",
]
