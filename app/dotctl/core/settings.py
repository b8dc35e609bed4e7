"""Global settings applied to the user's shell profile.

Edits are append-only and idempotent: a block is added only when its
marker comment is not already present in the profile.
"""

import logging
from pathlib import Path

from dotctl.core.config import SettingsConfig

logger = logging.getLogger(__name__)

PATH_MARKER = "# dotctl: PATH"


class ShellProfile:
    """A shell startup file such as ~/.zshrc or ~/.bash_profile.

    Attributes:
        path: Location of the profile.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def contains(self, needle: str) -> bool:
        """Check if the profile contains a string.

        Returns:
            False if the profile does not exist or cannot be read.
        """
        try:
            return needle in self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return False

    def ensure_block(self, marker: str, lines: list[str]) -> bool:
        """Append a marked block unless the marker is already present.

        The profile is created if it does not exist.

        Args:
            marker: Comment line identifying the block.
            lines: Lines written after the marker.

        Returns:
            True if the block was appended, False if it was already there.

        Raises:
            OSError: If the profile cannot be written.
        """
        if self.contains(marker):
            logger.debug("Block %r already present in %s", marker, self.path)
            return False

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open(mode="a", encoding="utf-8") as f:
            f.write("\n" + "\n".join([marker, *lines]) + "\n")

        logger.info("Added %r block to %s", marker, self.path)
        return True


def _path_export(directory: str) -> str:
    if directory.startswith(("/", "~", "$")):
        return f'export PATH="{directory}:$PATH"'
    return f'export PATH="$HOME/{directory}:$PATH"'


def has_path_dir(profile: ShellProfile, directory: str) -> bool:
    """Check if the profile already puts a directory on PATH."""
    if profile.contains(_path_export(directory)):
        return True
    return not directory.startswith(("/", "~", "$")) and profile.contains(f"$HOME/{directory}")


def apply_settings(settings: SettingsConfig, home: Path | None = None) -> list[str]:
    """Apply global settings to the shell profile.

    Ensures every configured PATH directory is exported. Existing exports
    written by hand (e.g. a line mentioning "$HOME/bin") are respected.

    Args:
        settings: Settings section of the configuration.
        home: Home directory override.

    Returns:
        Descriptions of the changes made; empty when nothing changed.

    Raises:
        OSError: If the shell profile cannot be written.
    """
    if not settings.path_dirs:
        return []

    profile = ShellProfile(settings.resolve_shell_profile(home))
    missing = [d for d in settings.path_dirs if not has_path_dir(profile, d)]
    if not missing:
        logger.info("PATH configuration already present in %s", profile.path)
        return []

    exports = [_path_export(d) for d in missing]
    marker = f"{PATH_MARKER} ({', '.join(missing)})"
    profile.ensure_block(marker, exports)
    return [f"Added {d} to PATH in {profile.path}" for d in missing]
