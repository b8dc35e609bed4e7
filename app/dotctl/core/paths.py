"""Locations of dotctl's own files.

dotctl keeps its config under the XDG config home and everything it
writes on its own (installation record, setup log, conflict backups)
under the XDG state home:

- ~/.config/dotctl/config.toml
- ~/.local/state/dotctl/{state.json,setup.log,backups/}

The dotfiles source tree defaults to ~/.dotfiles.
"""

import os
from pathlib import Path

APP_NAME = "dotctl"

DOTFILES_DIR_ENV = "DOTFILES_DIR"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Resolve dotctl's directory under an XDG base.

    Args:
        env_var: Base directory variable, honored when set and non-empty.
        default_subdir: Fallback base relative to the home directory.

    Returns:
        <base>/dotctl
    """
    base = os.environ.get(env_var)
    root = Path(base) if base else Path.home() / default_subdir
    return root / APP_NAME


def get_config_dir() -> Path:
    """Directory holding config.toml and theme.toml."""
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Directory holding the installation record, the setup log and backups."""
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_config_path() -> Path:
    """Default config file: ~/.config/dotctl/config.toml."""
    return get_config_dir() / "config.toml"


def get_state_path() -> Path:
    """Installation record: ~/.local/state/dotctl/state.json."""
    return get_state_dir() / "state.json"


def get_log_path() -> Path:
    """JSON-lines setup log: ~/.local/state/dotctl/setup.log."""
    return get_state_dir() / "setup.log"


def get_backup_root() -> Path:
    """Parent of the timestamped conflict backup directories.

    Each reconciliation pass that displaces files creates one
    subdirectory here.
    """
    return get_state_dir() / "backups"


def get_default_source_dir() -> Path:
    """Dotfiles source tree used when the config does not name one.

    Returns:
        $DOTFILES_DIR if set, otherwise ~/.dotfiles.
    """
    override = os.environ.get(DOTFILES_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".dotfiles"
