"""CLI commands for dotctl.

This package contains all subcommand implementations.
"""

from dotctl.cli.commands import apply, init, status, verify

__all__ = ["apply", "init", "status", "verify"]
