"""CLI package for dotctl.

This package contains the Typer application and all subcommands.
"""

from dotctl.cli.main import app

__all__ = ["app"]
