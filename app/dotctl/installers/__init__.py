"""Package installers for dotctl.

This module exports the installer interface and the Homebrew implementation.
"""

from dotctl.installers.base import Installer, InstallResult
from dotctl.installers.brew import BrewInstaller

__all__ = ["BrewInstaller", "InstallResult", "Installer"]
