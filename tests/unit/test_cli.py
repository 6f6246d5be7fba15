"""Unit tests for the extdns-rbac CLI.

The cluster connection and logging setup are patched out; commands run
against the in-memory store from conftest.
"""

from __future__ import annotations

import json
from collections.abc import Generator
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock, patch

import pytest

from extdns_rbac.cli.main import cli
from extdns_rbac.cli.utils import ExitCode, exit_code_for
from extdns_rbac.errors import (
    ObjectCreateError,
    ObjectUpdateError,
    OverlappingRulesError,
    RBACReconcileError,
    RemoteStoreError,
)
from extdns_rbac.schemas.rbac import ClusterRole, ObjectMeta, PolicyRule

if TYPE_CHECKING:
    from click.testing import CliRunner


@pytest.fixture
def patched_store(store: Any) -> Generator[MagicMock, None, None]:
    """Route the CLI to the in-memory store and skip logging setup."""
    with (
        patch("extdns_rbac.cli.main._build_store", return_value=store) as build_store,
        patch("extdns_rbac.cli.main.configure_logging"),
    ):
        yield build_store


@pytest.fixture
def failing_store() -> Generator[MagicMock, None, None]:
    """Route the CLI to a store whose calls are configured per test."""
    broken = MagicMock()
    with (
        patch("extdns_rbac.cli.main._build_store", return_value=broken),
        patch("extdns_rbac.cli.main.configure_logging"),
    ):
        yield broken


class TestRootCommand:
    """Tests for the command group."""

    def test_help(self, cli_runner: CliRunner) -> None:
        """Test help lists the commands."""
        result = cli_runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "reconcile" in result.output
        assert "diff" in result.output

    def test_short_help(self, cli_runner: CliRunner) -> None:
        """Test -h is accepted as a help flag."""
        assert cli_runner.invoke(cli, ["-h"]).exit_code == 0

    def test_version(self, cli_runner: CliRunner) -> None:
        """Test --version prints the program name."""
        result = cli_runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert result.output.startswith("extdns-rbac ")

    def test_name_required(self, cli_runner: CliRunner) -> None:
        """Test commands fail with a usage error without --name."""
        result = cli_runner.invoke(cli, ["reconcile"])

        assert result.exit_code == ExitCode.USAGE_ERROR


@pytest.mark.usefixtures("patched_store")
class TestReconcileCommand:
    """Tests for extdns-rbac reconcile."""

    def test_creates_objects(self, cli_runner: CliRunner, store: Any) -> None:
        """Test a pass against an empty cluster creates all four objects."""
        result = cli_runner.invoke(cli, ["reconcile", "--name", "sample"])

        assert result.exit_code == 0, result.output
        assert "Reconciling RBAC for ExternalDNS 'sample'" in result.output
        assert "RBAC Reconcile:" in result.output
        assert "ClusterRole/external-dns (resourceVersion" in result.output
        assert "Role/external-dns-operator -n external-dns" in result.output
        assert [w[0] for w in store.writes] == ["create"] * 4

    def test_configuration_passed_to_store(
        self, cli_runner: CliRunner, patched_store: MagicMock
    ) -> None:
        """Test namespace and context options reach the configuration."""
        result = cli_runner.invoke(
            cli,
            [
                "reconcile",
                "--name",
                "sample",
                "--operand-namespace",
                "dns",
                "--context",
                "kind-test",
            ],
        )

        assert result.exit_code == 0, result.output
        config = patched_store.call_args.args[0]
        assert config.operand_namespace == "dns"
        assert config.context == "kind-test"
        assert config.operator_namespace == "external-dns-operator"

    def test_invalid_name(self, cli_runner: CliRunner, store: Any) -> None:
        """Test an invalid instance name exits with a validation error."""
        result = cli_runner.invoke(cli, ["reconcile", "--name", "Bad_Name"])

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "Invalid ExternalDNS name" in result.output
        assert store.writes == []

    def test_invalid_namespace(self, cli_runner: CliRunner) -> None:
        """Test an invalid namespace exits with a validation error."""
        result = cli_runner.invoke(
            cli, ["reconcile", "--name", "sample", "--operand-namespace", "Bad_NS"]
        )

        assert result.exit_code == ExitCode.VALIDATION_ERROR
        assert "Invalid configuration" in result.output


class TestReconcileFailures:
    """Tests for exit codes of failing passes."""

    def test_store_unreachable(self, cli_runner: CliRunner, failing_store: MagicMock) -> None:
        """Test a failing API server exits with a network error."""
        failing_store.get.side_effect = RemoteStoreError(
            "Role", "external-dns-operator", "external-dns", status=503, reason="unavailable"
        )

        result = cli_runner.invoke(cli, ["reconcile", "--name", "sample"])

        assert result.exit_code == ExitCode.NETWORK_ERROR
        assert "Error: failed to get Role 'external-dns-operator'" in result.output
        failing_store.create.assert_not_called()

    def test_forbidden(self, cli_runner: CliRunner, failing_store: MagicMock) -> None:
        """Test a 403 from the API server exits with a permission error."""
        failing_store.get.side_effect = RemoteStoreError(
            "Role", "external-dns-operator", "external-dns", status=403, reason="Forbidden"
        )

        result = cli_runner.invoke(cli, ["reconcile", "--name", "sample"])

        assert result.exit_code == ExitCode.PERMISSION_ERROR

    def test_cluster_connection_fails(self, cli_runner: CliRunner) -> None:
        """Test a kubeconfig that cannot be loaded exits before reconciling."""
        with (
            patch(
                "extdns_rbac.cli.main._build_store",
                side_effect=RemoteStoreError(
                    "Configuration", "kubeconfig", operation="load", reason="no config"
                ),
            ),
            patch("extdns_rbac.cli.main.configure_logging"),
        ):
            result = cli_runner.invoke(cli, ["reconcile", "--name", "sample"])

        assert result.exit_code == ExitCode.NETWORK_ERROR
        assert "failed to load Configuration 'kubeconfig': no config" in result.output


@pytest.mark.usefixtures("patched_store")
class TestDiffCommand:
    """Tests for extdns-rbac diff."""

    def test_empty_cluster_text(self, cli_runner: CliRunner, store: Any) -> None:
        """Test every object is reported as a create and nothing is written."""
        result = cli_runner.invoke(cli, ["diff", "--name", "sample"])

        assert result.exit_code == 0, result.output
        assert "Found 4 difference(s):" in result.output
        assert "  + Role/external-dns-operator -n external-dns" in result.output
        assert "  + ClusterRoleBinding/external-dns" in result.output
        assert store.writes == []

    def test_update_reason_shown(self, cli_runner: CliRunner, store: Any) -> None:
        """Test drifted objects are listed with the comparator reason."""
        cli_runner.invoke(cli, ["reconcile", "--name", "sample"])
        current = store.get(ClusterRole, "external-dns")
        store.update(
            current.model_copy(
                update={"rules": [PolicyRule(resources=["pods"], verbs=["get"])]}
            )
        )

        result = cli_runner.invoke(cli, ["diff", "--name", "sample"])

        assert result.exit_code == 0, result.output
        assert "Found 1 difference(s):" in result.output
        assert "  ~ ClusterRole/external-dns" in result.output
        assert "diff found in the policy rules" in result.output

    def test_no_differences_after_reconcile(self, cli_runner: CliRunner) -> None:
        """Test a reconciled cluster reports no differences."""
        cli_runner.invoke(cli, ["reconcile", "--name", "sample"])

        result = cli_runner.invoke(cli, ["diff", "--name", "sample"])

        assert result.exit_code == 0, result.output
        assert "No differences found" in result.output

    def test_json_output(self, cli_runner: CliRunner, store: Any) -> None:
        """Test JSON output lists one diff per object in reconcile order."""
        store.seed(ClusterRole(metadata=ObjectMeta(name="external-dns")))

        result = cli_runner.invoke(cli, ["diff", "--name", "sample", "-o", "json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert [d["kind"] for d in payload["diffs"]] == [
            "Role",
            "RoleBinding",
            "ClusterRole",
            "ClusterRoleBinding",
        ]
        assert [d["change_type"] for d in payload["diffs"]] == [
            "create",
            "create",
            "update",
            "create",
        ]


class TestExitCodeFor:
    """Tests for mapping errors to exit codes."""

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (RemoteStoreError("Role", "r", "ns", status=401), ExitCode.PERMISSION_ERROR),
            (RemoteStoreError("Role", "r", "ns", status=403), ExitCode.PERMISSION_ERROR),
            (RemoteStoreError("Role", "r", "ns", status=500), ExitCode.NETWORK_ERROR),
            (RemoteStoreError("Role", "r", "ns"), ExitCode.NETWORK_ERROR),
            (ObjectCreateError("Role", "r", "ns"), ExitCode.RECONCILE_ERROR),
            (ObjectUpdateError("Role", "r", "ns"), ExitCode.RECONCILE_ERROR),
            (OverlappingRulesError(["/pods"]), ExitCode.VALIDATION_ERROR),
            (RBACReconcileError("boom"), ExitCode.GENERAL_ERROR),
        ],
    )
    def test_mapping(self, error: RBACReconcileError, expected: ExitCode) -> None:
        """Test each error family maps to its exit code."""
        assert exit_code_for(error) == expected
