"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from dotctl.core.log import LOGGER_NAME


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point HOME and the XDG directories into tmp_path for every test.

    Yields:
        The fake home directory.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))
    for name in ("NONINTERACTIVE", "DOTFILES_DIR", "SHELL", "SKIP_HOMEBREW"):
        monkeypatch.delenv(name, raising=False)

    yield home

    # The CLI detaches the dotctl logger from the root logger; undo that for caplog
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def _make_package(root: Path, name: str, files: dict[str, str]) -> Path:
    """Create a package directory with the given files.

    Args:
        root: Directory holding the packages.
        name: Package name.
        files: Relative path -> file content.

    Returns:
        The package directory.
    """
    package_dir = root / name
    package_dir.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = package_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return package_dir


@pytest.fixture
def make_package() -> Callable[[Path, str, dict[str, str]], Path]:
    """Factory creating a package directory with the given files."""
    return _make_package


@pytest.fixture
def dotfiles(tmp_path: Path) -> Path:
    """Dotfiles source tree with two packages under config/.

    Layout:
        config/git/.gitconfig
        config/zsh/.zshrc
        config/zsh/.config/zsh/aliases.zsh
    """
    source = tmp_path / "dotfiles"
    packages = source / "config"
    _make_package(packages, "git", {".gitconfig": "[user]\n"})
    _make_package(
        packages,
        "zsh",
        {".zshrc": "# zshrc\n", ".config/zsh/aliases.zsh": "alias ll='ls -l'\n"},
    )
    return source


@pytest.fixture
def target(tmp_path: Path) -> Path:
    """Empty link target root."""
    path = tmp_path / "target"
    path.mkdir()
    return path
