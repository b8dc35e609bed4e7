"""Abstract base class for package installers.

This module defines the Installer interface consumed by the orchestrator.
An installer takes a bundle manifest and installs every package it names,
skipping packages that are already installed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class InstallResult:
    """Outcome of installing a bundle.

    The status covers the whole batch, not individual packages.

    Attributes:
        manifest: Bundle manifest that was installed.
        success: Whether the installer reported success.
        message: Short success description, None otherwise.
        error: Error message if the install failed, None otherwise.
    """

    manifest: Path
    success: bool
    message: str | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        """Check if the install failed."""
        return not self.success


class Installer(ABC):
    """Abstract base class for all package installers.

    Example:
        >>> installer = BrewInstaller()
        >>> if installer.is_available():
        ...     result = installer.install(Path("~/.dotfiles/Brewfile").expanduser())
        ...     print(result.success)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the installer name shown to the user."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this installer can be used on the system."""

    def shellenv_line(self) -> str | None:
        """Return a shell profile line that puts installed tools on PATH, if any."""
        return None

    def check(self, manifest: Path) -> bool | None:
        """Check whether every package named in a manifest is installed.

        Args:
            manifest: Path to the bundle manifest.

        Returns:
            True or False, or None if this installer cannot tell.
        """
        return None

    @abstractmethod
    def install(self, manifest: Path) -> InstallResult:
        """Install every package named in a bundle manifest.

        Args:
            manifest: Path to the bundle manifest.

        Returns:
            InstallResult for the whole batch.

        Raises:
            RuntimeError: If the installer is not available.
        """
