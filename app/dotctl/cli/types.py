"""Shared types and utilities for CLI commands.

This module provides the exit codes, enums and helper functions used
across multiple CLI command modules.
"""

from enum import Enum

import typer

from dotctl.core.config import DotctlConfig, load_config
from dotctl.core.errors import ConfigError, DotctlError
from dotctl.utils.formatting import print_error, print_hint

# Process exit codes
EXIT_FAILED = 1
EXIT_FATAL = 2
EXIT_CANCELLED = 4


class PolicyChoice(str, Enum):
    """Conflict policies selectable on the command line."""

    BACKUP = "backup"
    ADOPT = "adopt"
    ABORT = "abort"


def exit_fatal(error: DotctlError) -> typer.Exit:
    """Print a fatal error with its hint and build the matching Exit.

    Args:
        error: The fatal error.

    Returns:
        typer.Exit carrying the fatal exit code, to be raised by the caller.
    """
    print_error(str(error))
    if error.hint:
        print_hint(error.hint)
    return typer.Exit(code=EXIT_FATAL)


def load_config_or_exit() -> DotctlConfig:
    """Load the configuration, exiting with the fatal code on error.

    Raises:
        typer.Exit: If the configuration file is invalid.
    """
    try:
        return load_config()
    except ConfigError as e:
        raise exit_fatal(e) from e
