"""Package scanner for the dotfiles source tree.

Builds Package descriptions by walking package directories. Scanning is
read-only and happens fresh on every reconciliation pass.
"""

import fnmatch
import logging
import os
from collections.abc import Sequence
from pathlib import Path, PurePosixPath

from dotctl.links.models import Package

logger = logging.getLogger(__name__)


def is_ignored(relative_path: str, patterns: Sequence[str]) -> bool:
    """Check if a package entry matches an ignore pattern.

    Patterns starting with "/" only match entries at the package root.
    Other patterns are matched against the entry's base name at any depth.

    Args:
        relative_path: POSIX path relative to the package root.
        patterns: fnmatch-style patterns.

    Returns:
        True if the entry should not be linked.
    """
    name = relative_path.rsplit("/", 1)[-1]
    top_level = "/" not in relative_path

    for pattern in patterns:
        if pattern.startswith("/"):
            if top_level and fnmatch.fnmatch(name, pattern[1:]):
                return True
        elif fnmatch.fnmatch(name, pattern):
            return True
    return False


def _walk(root: Path, ignore: Sequence[str]) -> list[str]:
    """Collect the linkable entries below root as POSIX relative paths."""
    paths: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = current.relative_to(root)

        descend: list[str] = []
        for dirname in sorted(dirnames):
            rel = (rel_dir / dirname).as_posix()
            if is_ignored(rel, ignore):
                continue
            if (current / dirname).is_symlink():
                paths.append(rel)
            else:
                descend.append(dirname)
        # Prune in place so os.walk skips ignored and symlinked directories
        dirnames[:] = descend

        for filename in filenames:
            rel = (rel_dir / filename).as_posix()
            if not is_ignored(rel, ignore):
                paths.append(rel)
    return paths


def scan_package(name: str, source_root: Path, ignore: Sequence[str] = ()) -> Package:
    """Scan a package directory into a Package.

    Regular files and symlinks become relative paths. Directories are
    descended into, except symlinked directories, which are linked as a
    single entry. A missing source root yields a Package with no paths.

    Args:
        name: Package name.
        source_root: Package directory.
        ignore: Ignore patterns (see is_ignored).

    Returns:
        Package with lexicographically sorted relative paths.
    """
    root = source_root.expanduser().resolve()
    if not root.is_dir():
        return Package(name=name, source_root=root)
    return Package(name=name, source_root=root, relative_paths=tuple(sorted(_walk(root, ignore))))


def scan_subdirectory(
    name: str, source_root: Path, subdir: str, ignore: Sequence[str] = ()
) -> Package:
    """Scan one subdirectory of source_root into a package mirrored at the same place.

    A subdirectory "bin" of ~/.dotfiles becomes a package whose entries
    are linked into ~/bin. Ignore patterns are anchored at the subdirectory.

    Args:
        name: Package name.
        source_root: Directory mirroring the target root.
        subdir: POSIX path of the subdirectory the package owns.
        ignore: Ignore patterns (see is_ignored).

    Returns:
        Package scoped to subdir, with paths relative to source_root.
    """
    root = source_root.expanduser().resolve()
    scope = PurePosixPath(subdir).as_posix()
    owned = root / scope
    if not owned.is_dir():
        return Package(name=name, source_root=root, scope=scope)

    paths = sorted(f"{scope}/{rel}" for rel in _walk(owned, ignore))
    return Package(name=name, source_root=root, relative_paths=tuple(paths), scope=scope)


def discover_packages(
    packages_dir: Path,
    order: Sequence[str] = (),
    ignore: Sequence[str] = (),
) -> list[Package]:
    """Discover all packages under a directory.

    Args:
        packages_dir: Directory holding one subdirectory per package.
        order: Explicit package names in processing order. When empty,
            every subdirectory is used, sorted by name.
        ignore: Ignore patterns applied inside each package.

    Returns:
        Packages in processing order. Names listed in ``order`` without a
        directory are still returned so the reconciler can report them.
    """
    if order:
        names = list(dict.fromkeys(order))
    else:
        names = sorted(
            entry.name
            for entry in packages_dir.iterdir()
            if entry.is_dir() and not is_ignored(entry.name, ignore)
        )

    packages = [scan_package(name, packages_dir / name, ignore) for name in names]
    logger.debug(
        "Discovered %d package(s) in %s: %s",
        len(packages),
        packages_dir,
        ", ".join(p.name for p in packages),
    )
    return packages


def discover_source_tree(
    source_root: Path,
    packages_subdir: str,
    order: Sequence[str] = (),
    ignore: Sequence[str] = (),
    bin_dir: str | None = None,
) -> list[Package]:
    """Discover every package of a dotfiles source tree.

    The bin package (source_root/bin_dir, linked into the same directory
    under the target root) comes first when that directory exists,
    followed by the packages under source_root/packages_subdir.

    Args:
        source_root: Root of the dotfiles source tree.
        packages_subdir: Directory under source_root holding the packages.
        order: Explicit package order (see discover_packages).
        ignore: Ignore patterns applied inside each package.
        bin_dir: Directory under source_root linked as a whole. None disables it.

    Returns:
        Packages in processing order.
    """
    packages = discover_packages(source_root / packages_subdir, order, ignore)
    if not bin_dir or not (source_root / bin_dir).is_dir():
        return packages

    name = PurePosixPath(bin_dir).name
    if any(p.name == name for p in packages):
        logger.warning("Package %s shadows the %s directory, not linking it", name, bin_dir)
        return packages
    return [scan_subdirectory(name, source_root, bin_dir, ignore), *packages]
