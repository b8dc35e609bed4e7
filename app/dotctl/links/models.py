"""Link reconciliation models.

Defines the package description built by scanning the source tree and the
result types produced by the link reconciler.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ReconcileMode(str, Enum):
    """How a reconciliation pass treats existing links.

    Attributes:
        INITIAL: Create missing links only.
        RESTOW: Remove obsolete links first, then create missing links.
    """

    INITIAL = "initial"
    RESTOW = "restow"


class ConflictPolicy(str, Enum):
    """What to do with a target path occupied by something foreign.

    Attributes:
        BACKUP: Move the target into a timestamped backup directory, then link.
        ADOPT: Move the target into the package, replacing the source, then link.
        ABORT: Leave the package untouched and mark it failed.
    """

    BACKUP = "backup"
    ADOPT = "adopt"
    ABORT = "abort"


class PackageOutcome(str, Enum):
    """Per-package result of a reconciliation pass."""

    APPLIED = "applied"
    APPLIED_WITH_BACKUPS = "applied-with-backups"
    SKIPPED_CURRENT = "skipped-already-current"
    FAILED_CONFLICT = "failed-conflict"
    FAILED_MISSING = "failed-missing-source"

    @property
    def failed(self) -> bool:
        """Check if this outcome counts as a failure."""
        return self in (PackageOutcome.FAILED_CONFLICT, PackageOutcome.FAILED_MISSING)


@dataclass(frozen=True, slots=True)
class Package:
    """A named directory of files to be linked into the target root.

    Attributes:
        name: Unique package name (the directory name).
        source_root: Absolute directory whose layout mirrors the target root.
        relative_paths: Sorted POSIX paths of files and symlinks in the package.
        scope: Subdirectory of source_root the package owns. Empty means all of it.
    """

    name: str
    source_root: Path
    relative_paths: tuple[str, ...] = ()
    scope: str = ""

    def __post_init__(self) -> None:
        """Validate package data after initialization."""
        if not self.name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)

    @property
    def exists(self) -> bool:
        """Check if the package source directory exists."""
        return self.owned_root.is_dir()

    @property
    def owned_root(self) -> Path:
        """Directory whose contents belong to this package."""
        return self.source_root / self.scope if self.scope else self.source_root

    def source_for(self, relative_path: str) -> Path:
        """Return the source path for a relative path."""
        return self.source_root / relative_path

    def directories(self) -> tuple[str, ...]:
        """Return every parent directory contributed by the package, sorted."""
        dirs: set[str] = set()
        for rel in self.relative_paths:
            parent = Path(rel).parent
            while parent != Path("."):
                dirs.add(parent.as_posix())
                parent = parent.parent
        return tuple(sorted(dirs))


@dataclass(frozen=True, slots=True)
class PackageResult:
    """Result of reconciling a single package.

    Attributes:
        package: Name of the package.
        outcome: Overall outcome for the package.
        linked: Relative paths newly linked in this pass.
        conflicts: Relative paths left unresolved.
        backed_up: Relative paths moved into the backup directory.
        adopted: Relative paths moved into the package.
        obsolete_removed: Relative paths of obsolete links removed.
        error: Error message for failed packages, None otherwise.
    """

    package: str
    outcome: PackageOutcome
    linked: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()
    backed_up: tuple[str, ...] = ()
    adopted: tuple[str, ...] = ()
    obsolete_removed: tuple[str, ...] = ()
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if the package was reconciled successfully."""
        return not self.outcome.failed


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    """Aggregate result of a reconciliation pass.

    Attributes:
        results: One PackageResult per package, in processing order.
        broken_links_removed: Dangling links removed from the target root.
        obsolete_links_removed: Obsolete links removed during restow.
        backup_dir: Backup directory created in this pass, if any.
        dry_run: Whether the pass was simulated.
    """

    results: tuple[PackageResult, ...] = ()
    broken_links_removed: int = 0
    obsolete_links_removed: int = 0
    backup_dir: Path | None = None
    dry_run: bool = False

    @property
    def success(self) -> bool:
        """Logical AND of every per-package outcome."""
        return all(r.success for r in self.results)

    @property
    def failed(self) -> tuple[PackageResult, ...]:
        """Results of failed packages."""
        return tuple(r for r in self.results if not r.success)
