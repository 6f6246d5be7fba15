"""Command-line interface for extdns-rbac.

Example:
    $ extdns-rbac --help
    $ extdns-rbac diff --name sample

Exit Codes:
    0: Success
    1: General error
    2: Usage error (invalid arguments)
    4: Permission denied by the API server
    5: Validation error
    7: Create or update of an RBAC object failed
    8: API server unreachable or failing
"""

from __future__ import annotations

from extdns_rbac.cli.main import cli
from extdns_rbac.cli.utils import ExitCode, error, error_exit, success, warn

__all__ = ["ExitCode", "cli", "error", "error_exit", "success", "warn"]
