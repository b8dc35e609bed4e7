"""Console color theme.

The bundled data/theme.toml holds the default palette. Any subset of its
[colors] table can be overridden in ~/.config/dotctl/theme.toml. An
unreadable or invalid override is logged and ignored.
"""

import functools
import logging
import re
import tomllib
from importlib import resources
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from dotctl.core.paths import get_config_dir

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})")


class ThemeColors(BaseModel):
    """Palette used by the CLI.

    Every value is a #RGB or #RRGGBB hex color.
    """

    model_config = ConfigDict(extra="forbid")

    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    # Package outcomes in the links table
    linked: str = "#c1ff62"
    conflict: str = "#f53263"
    current: str = "#226666"
    backup: str = "#0e8ac8"

    @field_validator("*", mode="before")
    @classmethod
    def _check_hex(cls, value: object) -> str:
        if not isinstance(value, str) or not _HEX_COLOR.fullmatch(value.strip()):
            msg = f"expected a #RGB or #RRGGBB color, got {value!r}"
            raise ValueError(msg)
        return value.strip()


def get_user_theme_path() -> Path:
    """Path of the user override file (~/.config/dotctl/theme.toml)."""
    return get_config_dir() / "theme.toml"


def read_colors(path: Path) -> dict[str, str]:
    """Read the [colors] table of a theme file.

    Args:
        path: Theme file.

    Returns:
        String-valued entries of [colors]; empty if the file is missing,
        unreadable or malformed.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        return {}

    table = data.get("colors", {})
    if not isinstance(table, dict):
        logger.warning("Ignoring theme file %s: [colors] is not a table", path)
        return {}
    return {k: v for k, v in table.items() if isinstance(v, str)}


def load_colors(user_path: Path | None = None) -> ThemeColors:
    """Merge the bundled palette with the user's overrides.

    Args:
        user_path: Override file. Default: ~/.config/dotctl/theme.toml

    Returns:
        The merged palette, or the bundled one if the overrides are invalid.
    """
    bundled_file = resources.files("dotctl.data").joinpath("theme.toml")
    with resources.as_file(bundled_file) as bundled_path:
        bundled = read_colors(bundled_path)

    overrides = read_colors(user_path or get_user_theme_path())
    if overrides:
        try:
            return ThemeColors(**{**bundled, **overrides})
        except ValidationError as e:
            logger.warning("Invalid theme overrides, using defaults: %s", e)
    return ThemeColors(**bundled)


def build_theme(colors: ThemeColors) -> Theme:
    """Map a palette onto the Rich style names used in markup."""
    styles = colors.model_dump()
    styles.update(
        {
            "error": f"bold {colors.error}",
            "conflict": f"bold {colors.conflict}",
            "bold_header": f"bold {colors.header}",
            "package.name": f"bold {colors.text}",
        }
    )
    return Theme(styles)


@functools.cache
def get_theme() -> Theme:
    """Return the Rich theme, built once per process."""
    return build_theme(load_colors())
