"""Rich console output for the CLI.

Results go to stdout through `console`; warnings, errors and hints go to
stderr through `err_console` so they stay visible when stdout is piped.
"""

import sys

from rich.console import Console

from dotctl.core.theme import get_theme


def _detect_color_system() -> str | None:
    """Use truecolor on a TTY so the hex theme renders exactly; let Rich decide otherwise."""
    return "truecolor" if sys.stdout.isatty() else None


console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def _emit(target: Console, style: str, message: str, label: str | None = None) -> None:
    if label is None:
        target.print(f"[{style}]{message}[/]")
    else:
        target.print(f"[{style}]{label}:[/] {message}")


def print_info(message: str) -> None:
    """Print an informational line to stdout."""
    _emit(console, "info", message)


def print_success(message: str) -> None:
    """Print a success line to stdout."""
    _emit(console, "success", message)


def print_warning(message: str) -> None:
    """Print a warning to stderr."""
    _emit(err_console, "warning", message, label="Warning")


def print_error(message: str) -> None:
    """Print an error to stderr."""
    _emit(err_console, "error", message, label="Error")


def print_hint(message: str) -> None:
    """Print a remediation hint to stderr, below the error it belongs to."""
    _emit(err_console, "muted", message, label="Hint")


def print_heading(title: str) -> None:
    """Print a section heading preceded by a blank line."""
    console.print()
    console.print(f"[bold_header]{title}[/]")


def print_detail(label: str, value: object) -> None:
    """Print a muted "label: value" line, e.g. for file locations."""
    console.print(f"[muted]{label}: {value}[/]")
