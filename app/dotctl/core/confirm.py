"""Confirmation prompts.

The orchestrator asks a Confirmer before destructive first-run work. The
terminal implementation blocks on user input; the automatic one is used
for non-interactive runs (--yes or NONINTERACTIVE set).
"""

import logging
import os
from typing import Protocol

import typer

logger = logging.getLogger(__name__)

NONINTERACTIVE_ENV = "NONINTERACTIVE"


class Confirmer(Protocol):
    """Capability to ask the user a yes/no question."""

    def confirm(self, prompt: str) -> bool:
        """Return True if the user agrees."""
        ...


class TerminalConfirmer:
    """Asks on the terminal; an empty answer means no."""

    def confirm(self, prompt: str) -> bool:
        return typer.confirm(prompt, default=False)


class AutoConfirmer:
    """Confirms everything without asking."""

    def confirm(self, prompt: str) -> bool:
        logger.info("Non-interactive mode: auto-confirming %r", prompt)
        return True


def is_noninteractive() -> bool:
    """Check the NONINTERACTIVE environment toggle (any non-empty value)."""
    return bool(os.environ.get(NONINTERACTIVE_ENV))


def get_confirmer(yes: bool = False) -> Confirmer:
    """Pick the confirmer for this run.

    Args:
        yes: True when the user passed --yes.

    Returns:
        AutoConfirmer for --yes or NONINTERACTIVE, TerminalConfirmer otherwise.
    """
    if yes or is_noninteractive():
        return AutoConfirmer()
    return TerminalConfirmer()
