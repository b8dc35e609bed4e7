"""dotctl configuration and settings.

This module provides the configuration model and I/O functions for
dotctl. The configuration names the dotfiles source tree, the link
target, the package bundle manifest and the global settings that are
applied on every run.

Configuration is stored in ~/.config/dotctl/config.toml. A missing file
is not an error: every section has working defaults.
"""

import os
import tomllib
from pathlib import Path
from typing import Annotated, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dotctl.core.errors import ConfigError
from dotctl.core.paths import get_config_path, get_default_source_dir

# Conflict policy names accepted in config and on the command line
PolicyName = Literal["backup", "adopt", "abort"]

DEFAULT_IGNORE: tuple[str, ...] = (".git", ".DS_Store", "*~", ".#*", "/README*", "/LICENSE*")


class LinksConfig(BaseModel):
    """Link reconciliation settings.

    Attributes:
        source_dir: Root of the dotfiles source tree.
        packages_subdir: Directory under source_dir holding one directory per package.
        target_dir: Directory that receives the links. None means the home directory.
        packages: Explicit package order. Empty means every package, sorted by name.
        ignore: fnmatch patterns for entries never linked; a leading "/" anchors
            the pattern to the package root.
        policy: Conflict resolution policy.
        bin_dir: Directory under source_dir linked entry by entry into the same
            directory under the target root. None disables it.
    """

    model_config = ConfigDict(extra="forbid")

    source_dir: Annotated[Path, Field(default_factory=get_default_source_dir)]
    packages_subdir: str = "config"
    target_dir: Path | None = None
    packages: Annotated[list[str], Field(default_factory=list)]
    ignore: Annotated[list[str], Field(default_factory=lambda: list(DEFAULT_IGNORE))]
    policy: PolicyName = "backup"
    bin_dir: str | None = "bin"

    @property
    def packages_dir(self) -> Path:
        """Directory containing the package directories."""
        return self.source_dir.expanduser() / self.packages_subdir

    @property
    def target_root(self) -> Path:
        """Resolved link target, defaulting to the home directory."""
        if self.target_dir is None:
            return Path.home()
        return self.target_dir.expanduser()


class InstallConfig(BaseModel):
    """Package bundle settings.

    Attributes:
        manifest: Bundle manifest path, relative to the source tree unless absolute.
    """

    model_config = ConfigDict(extra="forbid")

    manifest: str = "Brewfile"


class SettingsConfig(BaseModel):
    """Global settings applied to the shell profile.

    Attributes:
        shell_profile: Shell profile to edit. None derives it from $SHELL.
        path_dirs: Directories (relative to home, or absolute) exported on PATH.
    """

    model_config = ConfigDict(extra="forbid")

    shell_profile: Path | None = None
    path_dirs: Annotated[list[str], Field(default_factory=lambda: ["bin"])]

    def resolve_shell_profile(self, home: Path | None = None) -> Path:
        """Return the shell profile path to edit.

        Args:
            home: Home directory override.

        Returns:
            The configured profile, or ~/.zshrc for zsh users and
            ~/.bash_profile for everyone else.
        """
        if self.shell_profile is not None:
            return self.shell_profile.expanduser()
        base = home if home is not None else Path.home()
        if "zsh" in os.environ.get("SHELL", ""):
            return base / ".zshrc"
        return base / ".bash_profile"


class VerifyConfig(BaseModel):
    """Post-run audit settings.

    Attributes:
        expected_links: Paths relative to the target root that must be links.
            Alternatives are separated by "|".
    """

    model_config = ConfigDict(extra="forbid")

    expected_links: Annotated[list[str], Field(default_factory=list)]


class DotctlConfig(BaseModel):
    """Complete dotctl configuration."""

    model_config = ConfigDict(extra="forbid")

    links: Annotated[LinksConfig, Field(default_factory=LinksConfig)]
    install: Annotated[InstallConfig, Field(default_factory=InstallConfig)]
    settings: Annotated[SettingsConfig, Field(default_factory=SettingsConfig)]
    verify: Annotated[VerifyConfig, Field(default_factory=VerifyConfig)]

    @property
    def manifest_path(self) -> Path:
        """Absolute path of the package bundle manifest."""
        manifest = Path(self.install.manifest).expanduser()
        if manifest.is_absolute():
            return manifest
        return self.links.source_dir.expanduser() / manifest


def load_config(path: Path | None = None) -> DotctlConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated DotctlConfig. Defaults are returned when the file is absent.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        return DotctlConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config {config_path}: {e}") from e

    try:
        return DotctlConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content in {config_path}: {e}") from e


def save_config(config: DotctlConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The DotctlConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    from tempfile import NamedTemporaryFile

    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    # TOML has no null, so unset optional paths are dropped
    data = config.model_dump(mode="json", exclude_none=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path
