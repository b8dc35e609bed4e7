"""Homebrew bundle installer.

Installs the packages listed in a Brewfile with `brew bundle`.
"""

import logging
import subprocess
from pathlib import Path

from dotctl.installers.base import Installer, InstallResult
from dotctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# Default install prefixes, checked when brew is not on PATH
_DEFAULT_PREFIXES: tuple[Path, ...] = (
    Path("/opt/homebrew"),
    Path("/usr/local"),
    Path("/home/linuxbrew/.linuxbrew"),
)


class BrewInstaller(Installer):
    """Installer backed by Homebrew.

    Attributes:
        prefix: Homebrew prefix, detected on first use.
    """

    # Timeout for brew bundle (30 minutes)
    _BUNDLE_TIMEOUT: float = 1800.0
    _CHECK_TIMEOUT: float = 120.0

    def __init__(self, prefix: Path | None = None) -> None:
        self._prefix = prefix

    @property
    def name(self) -> str:
        return "Homebrew"

    @property
    def prefix(self) -> Path | None:
        """Homebrew prefix, or None if Homebrew is not installed."""
        if self._prefix is None:
            self._prefix = self.detect_prefix()
        return self._prefix

    def detect_prefix(self) -> Path | None:
        """Find the Homebrew installation.

        Asks `brew --prefix` when brew is on PATH, otherwise probes the
        default prefixes for an executable bin/brew.

        Returns:
            The prefix, or None if Homebrew is not installed.
        """
        if command_exists("brew"):
            try:
                result = run_command(["brew", "--prefix"], timeout=30.0)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.warning("brew --prefix failed: %s", e)
            else:
                if result.success and result.stdout.strip():
                    return Path(result.stdout.strip())

        for prefix in _DEFAULT_PREFIXES:
            if (prefix / "bin" / "brew").is_file():
                return prefix
        return None

    @property
    def brew(self) -> str:
        """Path to the brew executable."""
        if self.prefix is None:
            return "brew"
        return str(self.prefix / "bin" / "brew")

    def is_available(self) -> bool:
        """Check if Homebrew is installed."""
        return self.prefix is not None

    def shellenv_line(self) -> str:
        """Return the shell profile line that loads the Homebrew environment."""
        return f'eval "$({self.brew} shellenv)"'

    def install(self, manifest: Path) -> InstallResult:
        """Install a Brewfile with `brew bundle install --no-upgrade`.

        Packages that are already installed are skipped by brew itself.

        Args:
            manifest: Path to the Brewfile.

        Returns:
            InstallResult for the whole bundle.

        Raises:
            RuntimeError: If Homebrew is not installed.
        """
        if not self.is_available():
            msg = "Homebrew is not installed on this system"
            raise RuntimeError(msg)

        if not manifest.is_file():
            return InstallResult(
                manifest=manifest,
                success=False,
                error=f"Brewfile not found: {manifest}",
            )

        args = [self.brew, "bundle", "install", f"--file={manifest}", "--no-upgrade"]
        # Keep brew from writing Brewfile.lock.json into the dotfiles repo
        env = {"HOMEBREW_BUNDLE_NO_LOCK": "1"}
        logger.info("Installing packages from %s", manifest)

        try:
            result = run_command(args, timeout=self._BUNDLE_TIMEOUT, env=env)
        except subprocess.TimeoutExpired:
            logger.error("brew bundle timed out after %.0fs", self._BUNDLE_TIMEOUT)
            return InstallResult(manifest=manifest, success=False, error="brew bundle timed out")
        except OSError as e:
            logger.error("Could not run brew bundle: %s", e)
            return InstallResult(manifest=manifest, success=False, error=str(e))

        if result.success:
            logger.info("Brewfile packages installed successfully")
            return InstallResult(
                manifest=manifest,
                success=True,
                message="Brewfile packages installed",
            )

        error = result.stderr.strip() or result.stdout.strip() or "Unknown error"
        logger.error("brew bundle failed (exit %d): %s", result.returncode, error)
        return InstallResult(manifest=manifest, success=False, error=error)

    def check(self, manifest: Path) -> bool | None:
        """Check a Brewfile with `brew bundle check --no-upgrade`.

        Args:
            manifest: Path to the Brewfile.

        Returns:
            True if every entry is installed, False if some are missing or
            the Brewfile does not exist, None if Homebrew is not installed
            or could not be run.
        """
        if not self.is_available():
            return None
        if not manifest.is_file():
            logger.warning("Brewfile not found: %s", manifest)
            return False

        args = [self.brew, "bundle", "check", f"--file={manifest}", "--no-upgrade"]
        try:
            result = run_command(
                args, timeout=self._CHECK_TIMEOUT, env={"HOMEBREW_BUNDLE_NO_LOCK": "1"}
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("brew bundle check failed: %s", e)
            return None

        if not result.success:
            logger.warning("Brewfile dependencies missing: %s", result.stdout.strip())
        return result.success
