"""Main entry point for the extdns-rbac CLI.

Commands:
    extdns-rbac reconcile: Run one reconcile pass against the cluster
    extdns-rbac diff: Show what a reconcile pass would change, without writing

Example:
    $ extdns-rbac reconcile --name sample --source-type OpenShiftRoute
    $ extdns-rbac diff --name sample --output json
"""

from __future__ import annotations

from collections.abc import Callable
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import Any

import click
from pydantic import ValidationError

from extdns_rbac.cli.utils import (
    ExitCode,
    error_exit,
    exit_code_for,
    info,
    success,
    warning,
)
from extdns_rbac.config import ReconcilerConfig
from extdns_rbac.errors import RBACReconcileError
from extdns_rbac.reconciler import RBACReconciler
from extdns_rbac.scheme import build_operator_scheme
from extdns_rbac.schemas.diff import ChangeType, PlanResult
from extdns_rbac.schemas.externaldns import ExternalDNS, SourceType
from extdns_rbac.store import KubernetesObjectStore, ObjectStore, load_kube_config
from extdns_rbac.telemetry.logging import configure_logging


def _get_version() -> str:
    try:
        return get_version("extdns-rbac")
    except PackageNotFoundError:
        return "unknown"


# =============================================================================
# Shared Options
# =============================================================================


def _reconcile_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options shared by every command."""
    options = [
        click.option(
            "--name",
            required=True,
            help="Name of the ExternalDNS instance.",
            metavar="TEXT",
        ),
        click.option(
            "--source-type",
            type=click.Choice([s.value for s in SourceType]),
            default=SourceType.SERVICE.value,
            show_default=True,
            help="Source type watched by the instance.",
        ),
        click.option(
            "--operand-namespace",
            default=None,
            help="Namespace ExternalDNS runs in [env: EXTDNS_RBAC_OPERAND_NAMESPACE].",
            metavar="TEXT",
        ),
        click.option(
            "--operator-namespace",
            default=None,
            help="Namespace the operator runs in [env: EXTDNS_RBAC_OPERATOR_NAMESPACE].",
            metavar="TEXT",
        ),
        click.option(
            "--kubeconfig",
            type=click.Path(exists=True, dir_okay=False, resolve_path=True),
            default=None,
            help="Path to kubeconfig file.",
            metavar="PATH",
        ),
        click.option("--context", default=None, help="Kubeconfig context.", metavar="TEXT"),
        click.option(
            "--log-level",
            type=click.Choice(
                ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
            ),
            default=None,
            help="Minimum log level.",
        ),
        click.option(
            "--json-logs/--console-logs",
            default=None,
            help="Render logs as JSON or for the console.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_config(**overrides: Any) -> ReconcilerConfig:
    """Build configuration from CLI options, falling back to the environment."""
    try:
        return ReconcilerConfig(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        error_exit(
            f"Invalid configuration: {e.error_count()} error(s)",
            exit_code=ExitCode.VALIDATION_ERROR,
            detail=e.errors()[0]["msg"],
        )


def _build_extdns(name: str, source_type: str) -> ExternalDNS:
    try:
        return ExternalDNS(name=name, source_type=SourceType(source_type))
    except ValidationError as e:
        error_exit(
            "Invalid ExternalDNS name",
            exit_code=ExitCode.VALIDATION_ERROR,
            name=name,
            detail=e.errors()[0]["msg"],
        )


def _build_store(config: ReconcilerConfig) -> ObjectStore:
    """Connect to the cluster described by ``config``."""
    load_kube_config(config)
    return KubernetesObjectStore(build_operator_scheme())


def _prepare(
    name: str,
    source_type: str,
    operand_namespace: str | None,
    operator_namespace: str | None,
    kubeconfig: str | None,
    context: str | None,
    log_level: str | None,
    json_logs: bool | None,
) -> tuple[RBACReconciler, ExternalDNS]:
    config = _build_config(
        operand_namespace=operand_namespace,
        operator_namespace=operator_namespace,
        kubeconfig_path=kubeconfig,
        context=context,
        log_level=log_level,
        json_logs=json_logs,
    )
    configure_logging(log_level=config.log_level, json_output=config.json_logs)
    extdns = _build_extdns(name, source_type)
    try:
        store = _build_store(config)
    except RBACReconcileError as e:
        error_exit(str(e), exit_code=exit_code_for(e))
    return RBACReconciler(store, config), extdns


# =============================================================================
# Output
# =============================================================================


def _output_plan_as_text(plan: PlanResult) -> None:
    if not plan.has_changes():
        success("No differences found. RBAC objects match the desired state.")
        return

    by_type = plan.diffs_by_change_type()
    changes = len(by_type[ChangeType.CREATE]) + len(by_type[ChangeType.UPDATE])
    warning(f"Found {changes} difference(s):")

    for diff in plan.diffs:
        where = f" -n {diff.namespace}" if diff.namespace else ""
        if diff.change_type == ChangeType.CREATE:
            click.echo(f"  + {diff.kind}/{diff.name}{where}")
        elif diff.change_type == ChangeType.UPDATE:
            click.echo(f"  ~ {diff.kind}/{diff.name}{where}")
            click.echo(f"      {diff.reason}")


# =============================================================================
# Commands
# =============================================================================


@click.group(
    name="extdns-rbac",
    help="Reconcile the RBAC objects of the ExternalDNS operator.",
    epilog="Use 'extdns-rbac <command> --help' for command-specific help.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(
    version=_get_version(),
    prog_name="extdns-rbac",
    message="%(prog)s %(version)s",
)
def cli() -> None:
    """Root command group for the extdns-rbac CLI."""


@cli.command(
    name="reconcile",
    help="Create or repair the operator and ExternalDNS RBAC objects.",
    epilog="""
Examples:
    $ extdns-rbac reconcile --name sample
    $ extdns-rbac reconcile --name sample --source-type OpenShiftRoute
""",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@_reconcile_options
def reconcile_command(**options: Any) -> None:
    """Run one reconcile pass."""
    reconciler, extdns = _prepare(**options)
    info(f"Reconciling RBAC for ExternalDNS '{extdns.name}'")
    try:
        result = reconciler.ensure_rbac(extdns)
    except RBACReconcileError as e:
        error_exit(str(e), exit_code=exit_code_for(e))
    success(str(result))


@cli.command(
    name="diff",
    help="Show what a reconcile pass would change, without writing.",
    epilog="""
Examples:
    $ extdns-rbac diff --name sample
    $ extdns-rbac diff --name sample --output json
""",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@_reconcile_options
@click.option(
    "--output",
    "-o",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    show_default=True,
    help="Output format.",
)
def diff_command(output: str, **options: Any) -> None:
    """Plan a reconcile pass and print the differences."""
    reconciler, extdns = _prepare(**options)
    try:
        plan = reconciler.plan(extdns)
    except RBACReconcileError as e:
        error_exit(str(e), exit_code=exit_code_for(e))

    if output.lower() == "json":
        click.echo(plan.model_dump_json(indent=2))
    else:
        _output_plan_as_text(plan)


__all__ = ["cli"]
