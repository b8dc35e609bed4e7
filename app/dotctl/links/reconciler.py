"""Link reconciler for the dotfiles symlink farm.

Makes the target root mirror the union of all packages by creating
relative symlinks, the same layout GNU Stow produces. Conflicts are
detected by inspecting the filesystem directly and resolved according to
a ConflictPolicy. Reconciliation is idempotent: a second pass over
unchanged packages only reports skipped-already-current outcomes.
"""

import logging
import os
import shutil
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from dotctl.core.errors import TargetRootError
from dotctl.core.paths import get_backup_root
from dotctl.links.models import (
    ConflictPolicy,
    Package,
    PackageOutcome,
    PackageResult,
    ReconcileMode,
    ReconciliationReport,
)

logger = logging.getLogger(__name__)


class _PathState(Enum):
    MISSING = "missing"
    CURRENT = "current"
    CONFLICT = "conflict"


class _DirLink(Enum):
    """Kinds of directory symlink found above a target path."""

    # Points at the package's own matching directory
    OWN = "own"
    # Points into a package tree: another package's folded directory
    FOLD = "fold"
    # Leaves the target root
    FOREIGN = "foreign"
    # Stays inside the target root; treated as a plain directory
    LOCAL = "local"


@dataclass(slots=True)
class _Plan:
    """Classification of every relative path of one package."""

    current: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    # Blocking target path -> relative paths it blocks, in first-seen order
    conflicts: dict[Path, list[str]] = field(default_factory=dict)
    # Folded directory link -> relative paths reached through it
    folds: dict[Path, list[str]] = field(default_factory=dict)


@dataclass(slots=True)
class _Resolution:
    freed: list[str] = field(default_factory=list)
    backed_up: list[str] = field(default_factory=list)
    adopted: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)


class _BackupSession:
    """Lazily creates the single backup directory shared by one pass."""

    def __init__(self, backup_root: Path, *, dry_run: bool) -> None:
        self._backup_root = backup_root
        self._dry_run = dry_run
        self.path: Path | None = None

    def directory(self) -> Path:
        """Return the backup directory, creating it on first use.

        Raises:
            OSError: If the directory cannot be created.
        """
        if self.path is not None:
            return self.path

        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        candidate = self._backup_root / stamp
        if self._dry_run:
            self.path = candidate
            return candidate

        self._backup_root.mkdir(parents=True, exist_ok=True)
        suffix = 1
        while True:
            try:
                candidate.mkdir()
                break
            except FileExistsError:
                candidate = self._backup_root / f"{stamp}-{suffix}"
                suffix += 1

        logger.info("Created backup directory %s", candidate)
        self.path = candidate
        return candidate


class LinkReconciler:
    """Creates, repairs and removes links from packages into a target root.

    Attributes:
        policy: Conflict policy applied by reconcile().
        dry_run: If True, report what would happen without touching the filesystem.
    """

    def __init__(
        self,
        *,
        policy: ConflictPolicy = ConflictPolicy.BACKUP,
        backup_root: Path | None = None,
        dry_run: bool = False,
    ) -> None:
        """Initialize the reconciler.

        Args:
            policy: Conflict policy applied by reconcile().
            backup_root: Directory receiving timestamped backup directories.
                Default: ~/.local/state/dotctl/backups
            dry_run: If True, simulate every operation.
        """
        self.policy = policy
        self.dry_run = dry_run
        self._backup_root = backup_root if backup_root is not None else get_backup_root()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def reconcile(
        self,
        packages: Sequence[Package],
        target_root: Path,
        mode: ReconcileMode = ReconcileMode.INITIAL,
    ) -> ReconciliationReport:
        """Reconcile every package into the target root.

        Broken links among the target root's immediate children are
        removed first. Packages are then processed in the given order; a
        failing package never stops the batch.

        Args:
            packages: Packages in processing order.
            target_root: Directory receiving the links.
            mode: INITIAL, or RESTOW to remove obsolete links first.

        Returns:
            ReconciliationReport with one result per package.

        Raises:
            TargetRootError: If the target root is missing or not writable.
        """
        root = self._check_target_root(target_root)
        logger.info(
            "Reconciling %d package(s) into %s (mode=%s, policy=%s, dry_run=%s)",
            len(packages),
            root,
            mode.value,
            self.policy.value,
            self.dry_run,
        )

        broken = self._remove_broken(root)
        trees = self._trees(packages)
        session = _BackupSession(self._backup_root, dry_run=self.dry_run)

        results: list[PackageResult] = []
        attributed = 0
        for package in packages:
            # On restow, a broken link into a package is that package's obsolete link
            owned: tuple[str, ...] = ()
            if mode is ReconcileMode.RESTOW:
                owned = tuple(
                    self._relative(entry, root)
                    for entry, dest in broken
                    if self._owned_path(dest, package) is not None
                )
                attributed += len(owned)
            result = self._reconcile_package(package, root, mode, session, trees, owned)
            self._log_result(result)
            results.append(result)

        report = ReconciliationReport(
            results=tuple(results),
            broken_links_removed=len(broken) - attributed,
            obsolete_links_removed=sum(len(r.obsolete_removed) for r in results),
            backup_dir=None if self.dry_run else session.path,
            dry_run=self.dry_run,
        )
        logger.info(
            "Reconciliation finished: %d package(s), %d failed, "
            "%d broken and %d obsolete link(s) removed",
            len(report.results),
            len(report.failed),
            report.broken_links_removed,
            report.obsolete_links_removed,
        )
        return report

    def detect_conflicts(
        self, package: Package, target_root: Path, *, others: Sequence[Package] = ()
    ) -> tuple[Path, ...]:
        """List the target paths that would conflict when applying a package.

        Read-only: produces the same conflict set reconcile() would hit.
        Dangling links directly under the target root are not conflicts
        because reconcile() removes them before linking. Neither is a
        directory link folding a directory of one of the other packages:
        reconcile() splits it into per-entry links first.

        Args:
            package: Package to check.
            target_root: Directory receiving the links.
            others: The other packages linked into the same target root.

        Returns:
            Conflicting target paths in lexicographic order of the package paths.
        """
        root = target_root.expanduser().resolve()
        if not package.exists:
            return ()
        return tuple(self._plan(package, root, self._trees((package, *others))).conflicts)

    def resolve_conflicts(
        self,
        package: Package,
        conflicts: Iterable[Path],
        policy: ConflictPolicy,
        target_root: Path,
        *,
        others: Sequence[Package] = (),
    ) -> ReconciliationReport:
        """Resolve conflicts for one package and link the freed paths.

        All targets displaced by one call share a single, freshly created
        backup directory.

        Args:
            package: Package whose links are blocked.
            conflicts: Target paths, as returned by detect_conflicts().
            policy: BACKUP, ADOPT or ABORT. ADOPT moves user files into the
                package and must only be used when explicitly chosen.
            target_root: Directory receiving the links.
            others: The other packages linked into the same target root.

        Returns:
            ReconciliationReport with a single result for the package.

        Raises:
            TargetRootError: If the target root is missing or not writable.
        """
        root = self._check_target_root(target_root)
        session = _BackupSession(self._backup_root, dry_run=self.dry_run)

        if not package.exists:
            result = self._missing_result(package)
        else:
            wanted = {self._normalize(Path(c)) for c in conflicts}
            trees = self._trees((package, *others))
            plan = self._unfold_and_plan(package, root, trees)
            selected = {k: v for k, v in plan.conflicts.items() if k in wanted}
            if policy is ConflictPolicy.ABORT:
                result = self._abort_result(package, root, selected)
            else:
                resolution = self._resolve(package, root, selected, policy, session)
                result = self._finish(package, root, trees, resolution.freed, resolution)

        self._log_result(result)
        return ReconciliationReport(
            results=(result,),
            backup_dir=None if self.dry_run else session.path,
            dry_run=self.dry_run,
        )

    def remove_broken_links(self, target_root: Path) -> int:
        """Remove dangling symlinks among the target root's immediate children.

        Args:
            target_root: Directory to clean.

        Returns:
            Number of broken links removed (or that would be removed in dry-run).
        """
        return len(self._remove_broken(target_root.expanduser().resolve()))

    def _remove_broken(self, root: Path) -> list[tuple[Path, Path]]:
        """Remove broken links under root.

        Returns:
            (link path, normalized link destination) for every removed link.
        """
        removed: list[tuple[Path, Path]] = []
        try:
            entries = sorted(root.iterdir())
        except OSError as e:
            logger.warning("Cannot list %s for broken links: %s", root, e)
            return removed

        for entry in entries:
            if not entry.is_symlink() or entry.exists():
                continue
            dest = self._link_destination(entry)
            if self.dry_run:
                logger.info("Dry-run: would remove broken symlink %s", entry)
                removed.append((entry, dest))
                continue
            try:
                entry.unlink()
            except OSError as e:
                logger.warning("Could not remove broken symlink %s: %s", entry, e)
                continue
            logger.warning("Removed broken symlink %s -> %s", entry, dest)
            removed.append((entry, dest))

        if removed:
            logger.info("Removed %d broken symlink(s)", len(removed))
        return removed

    # ------------------------------------------------------------------
    # Package processing
    # ------------------------------------------------------------------

    def _reconcile_package(
        self,
        package: Package,
        root: Path,
        mode: ReconcileMode,
        session: _BackupSession,
        trees: frozenset[Path],
        already_removed: tuple[str, ...] = (),
    ) -> PackageResult:
        if not package.exists:
            return self._missing_result(package, already_removed)

        obsolete: tuple[str, ...] = ()
        if mode is ReconcileMode.RESTOW:
            obsolete = already_removed + self._remove_obsolete_links(package, root, trees)

        plan = self._unfold_and_plan(package, root, trees)

        if plan.conflicts and self.policy is ConflictPolicy.ABORT:
            return self._abort_result(package, root, plan.conflicts, obsolete)

        resolution = _Resolution()
        if plan.conflicts:
            resolution = self._resolve(package, root, plan.conflicts, self.policy, session)

        return self._finish(
            package, root, trees, plan.missing + resolution.freed, resolution, obsolete
        )

    def _finish(
        self,
        package: Package,
        root: Path,
        trees: frozenset[Path],
        to_link: list[str],
        resolution: _Resolution,
        obsolete: tuple[str, ...] = (),
    ) -> PackageResult:
        linked: list[str] = []
        failed: list[str] = list(resolution.unresolved)

        for rel in sorted(to_link):
            if self._create_link(package.source_for(rel), root / rel, root, trees):
                linked.append(rel)
            else:
                failed.append(rel)

        if failed:
            outcome = PackageOutcome.FAILED_CONFLICT
        elif resolution.backed_up or resolution.adopted:
            outcome = PackageOutcome.APPLIED_WITH_BACKUPS
        elif linked:
            outcome = PackageOutcome.APPLIED
        else:
            outcome = PackageOutcome.SKIPPED_CURRENT

        return PackageResult(
            package=package.name,
            outcome=outcome,
            linked=tuple(linked),
            conflicts=tuple(failed),
            backed_up=tuple(resolution.backed_up),
            adopted=tuple(resolution.adopted),
            obsolete_removed=obsolete,
            error=f"{len(failed)} path(s) could not be linked" if failed else None,
        )

    def _missing_result(
        self, package: Package, obsolete: tuple[str, ...] = ()
    ) -> PackageResult:
        msg = f"Package source directory not found: {package.owned_root}"
        logger.error(msg)
        return PackageResult(
            package=package.name,
            outcome=PackageOutcome.FAILED_MISSING,
            obsolete_removed=obsolete,
            error=msg,
        )

    def _abort_result(
        self,
        package: Package,
        root: Path,
        conflicts: dict[Path, list[str]],
        obsolete: tuple[str, ...] = (),
    ) -> PackageResult:
        rels = tuple(self._relative(path, root) for path in conflicts)
        for path in conflicts:
            logger.warning("Conflict in package %s: %s already exists", package.name, path)
        return PackageResult(
            package=package.name,
            outcome=PackageOutcome.FAILED_CONFLICT,
            conflicts=rels,
            obsolete_removed=obsolete,
            error=f"{len(rels)} conflict(s) left untouched (policy=abort)",
        )

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def _unfold_and_plan(self, package: Package, root: Path, trees: frozenset[Path]) -> _Plan:
        """Plan a package, first splitting other packages' folded directories.

        A folded directory is a single link standing in for a whole
        directory of another package. Linking through it would write into
        that package, so it is replaced by a real directory holding one
        link per entry. A fold that cannot be split becomes a conflict on
        the fold itself. In dry-run the folds are only reported.
        """
        plan = self._plan(package, root, trees)
        if self.dry_run:
            for fold in plan.folds:
                logger.info("Dry-run: would split folded directory %s", fold)
            return plan

        stuck: set[Path] = set()
        while plan.folds:
            for fold in sorted(plan.folds):
                if not self._unfold(fold):
                    stuck.add(fold)
            plan = self._plan(package, root, trees, frozenset(stuck))
        return plan

    def _plan(
        self,
        package: Package,
        root: Path,
        trees: frozenset[Path],
        stuck: frozenset[Path] = frozenset(),
    ) -> _Plan:
        plan = _Plan()
        for rel in package.relative_paths:
            state, blocking, fold = self._classify(package, root, rel, trees, stuck)
            if fold is not None:
                plan.folds.setdefault(fold, []).append(rel)
            if state is _PathState.CURRENT:
                plan.current.append(rel)
            elif state is _PathState.MISSING:
                plan.missing.append(rel)
            else:
                plan.conflicts.setdefault(blocking, []).append(rel)
        return plan

    def _classify(
        self,
        package: Package,
        root: Path,
        rel: str,
        trees: frozenset[Path],
        stuck: frozenset[Path] = frozenset(),
    ) -> tuple[_PathState, Path, Path | None]:
        """Classify one target path.

        Returns:
            The state, the target entry responsible for it, and the first
            folded directory of another package on the way, if any. For a
            conflict caused by a parent, the responsible entry is the parent.
            Behind a fold the state is the one the path has once the fold
            is split.
        """
        source = package.source_for(rel)
        target = root / rel
        fold: Path | None = None
        # Links below a package directory link belong to that package's tree
        inside_package = False

        # An existing non-directory ancestor blocks the whole subtree
        for parent in reversed(Path(rel).parents[:-1]):
            ancestor = root / parent
            if ancestor.is_symlink() and not ancestor.exists():
                if ancestor.parent == root:
                    return _PathState.MISSING, target, fold
                return _PathState.CONFLICT, ancestor, fold
            if ancestor.exists() and not ancestor.is_dir():
                return _PathState.CONFLICT, ancestor, fold
            if not ancestor.is_symlink() or inside_package:
                continue

            kind = self._dir_link_kind(package, root, parent, ancestor, trees)
            if kind is _DirLink.FOREIGN or ancestor in stuck:
                return _PathState.CONFLICT, ancestor, None
            if kind is _DirLink.FOLD:
                fold = ancestor
            inside_package = kind in (_DirLink.OWN, _DirLink.FOLD)

        if target.is_symlink():
            if self._points_to(target, source):
                return _PathState.CURRENT, target, fold
            if not target.exists() and target.parent == root:
                # Dangling top-level links are removed by the cleanup pass
                return _PathState.MISSING, target, fold
            return _PathState.CONFLICT, target, fold

        if not target.exists():
            return _PathState.MISSING, target, fold

        # Reached through a directory link that already points into the package
        if self._points_to(target, source):
            return _PathState.CURRENT, target, fold

        return _PathState.CONFLICT, target, fold

    @staticmethod
    def _trees(packages: Iterable[Package]) -> frozenset[Path]:
        return frozenset(p.owned_root.resolve() for p in packages)

    @staticmethod
    def _dir_link_kind(
        package: Package, root: Path, parent: Path, link: Path, trees: frozenset[Path]
    ) -> _DirLink:
        """Classify a directory link standing at target path root/parent."""
        try:
            dest = link.resolve()
            own = (package.source_root / parent).resolve()
        except (OSError, RuntimeError):
            return _DirLink.FOREIGN
        if dest == own:
            return _DirLink.OWN
        if any(dest.is_relative_to(tree) for tree in trees):
            return _DirLink.FOLD
        if not dest.is_relative_to(root):
            return _DirLink.FOREIGN
        return _DirLink.LOCAL

    @staticmethod
    def _points_to(link: Path, source: Path) -> bool:
        try:
            return link.resolve() == source.resolve()
        except (OSError, RuntimeError):
            return False

    @staticmethod
    def _relative(path: Path, root: Path) -> str:
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            return str(path)

    @staticmethod
    def _normalize(path: Path) -> Path:
        # Resolve the parent only: the entry itself may be a foreign link
        path = path.expanduser()
        return path.parent.resolve() / path.name

    @staticmethod
    def _link_destination(link: Path) -> Path:
        """Return where a link points, without following further links."""
        return Path(os.path.normpath(link.parent / os.readlink(link)))

    @staticmethod
    def _owned_path(dest: Path, package: Package) -> str | None:
        """Return dest relative to source_root, or None if the package does not own it."""
        if not dest.is_relative_to(package.owned_root):
            return None
        owned = dest.relative_to(package.source_root).as_posix()
        return None if owned == "." else owned

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _resolve(
        self,
        package: Package,
        root: Path,
        conflicts: dict[Path, list[str]],
        policy: ConflictPolicy,
        session: _BackupSession,
    ) -> _Resolution:
        resolution = _Resolution()
        for blocking, rels in conflicts.items():
            rel_blocking = self._relative(blocking, root)
            logger.warning("Conflict in package %s: %s already exists", package.name, blocking)

            if policy is ConflictPolicy.BACKUP:
                if self._backup(blocking, root, session):
                    resolution.backed_up.append(rel_blocking)
                    resolution.freed.extend(rels)
                else:
                    resolution.unresolved.append(rel_blocking)
            elif policy is ConflictPolicy.ADOPT:
                if self._adopt(package, blocking, root, rels):
                    resolution.adopted.append(rel_blocking)
                    resolution.freed.extend(rels)
                else:
                    resolution.unresolved.append(rel_blocking)
            else:
                resolution.unresolved.append(rel_blocking)
        return resolution

    def _backup(self, target: Path, root: Path, session: _BackupSession) -> bool:
        """Move a conflicting target into the pass's backup directory."""
        try:
            backup_dir = session.directory()
        except OSError as e:
            logger.error("Could not create backup directory: %s", e)
            return False

        dest = backup_dir / target.relative_to(root)
        if self.dry_run:
            logger.info("Dry-run: would back up %s to %s", target, dest)
            return True

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(target), str(dest))
        except OSError as e:
            logger.error("Backup failed for %s: %s", target, e)
            return False

        logger.warning("Backed up %s to %s", target, dest)
        return True

    def _adopt(self, package: Package, target: Path, root: Path, rels: list[str]) -> bool:
        """Move a conflicting target into the package, replacing its source."""
        rel = self._relative(target, root)
        if rels != [rel]:
            logger.error(
                "Cannot adopt %s: it blocks a directory of package %s", target, package.name
            )
            return False
        if target.is_symlink():
            logger.error("Cannot adopt %s: it is a link to another location", target)
            return False

        source = package.source_for(rel)
        if self.dry_run:
            logger.info("Dry-run: would adopt %s into %s", target, source)
            return True

        try:
            if source.is_dir() and not source.is_symlink():
                shutil.rmtree(source)
            elif source.exists() or source.is_symlink():
                source.unlink()
            source.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(target), str(source))
        except OSError as e:
            logger.error("Adopt failed for %s: %s", target, e)
            return False

        logger.warning("Adopted %s into package %s", target, package.name)
        return True

    def _unfold(self, fold: Path) -> bool:
        """Replace a folded directory link by a real directory of per-entry links."""
        try:
            link_value = os.readlink(fold)
            dest = fold.resolve()
            entries = sorted(dest.iterdir())
            fold.unlink()
        except OSError as e:
            logger.error("Could not split folded directory %s: %s", fold, e)
            return False

        try:
            fold.mkdir()
        except OSError as e:
            logger.error("Could not split folded directory %s: %s", fold, e)
            try:
                os.symlink(link_value, fold)
            except OSError as restore_error:
                logger.error("Could not restore link %s: %s", fold, restore_error)
            return False

        for entry in entries:
            try:
                os.symlink(os.path.relpath(entry, fold), fold / entry.name)
            except OSError as e:
                logger.error("Could not relink %s while splitting %s: %s", entry, fold, e)
                return False

        logger.warning(
            "Split folded directory %s into %d link(s) to %s", fold, len(entries), dest
        )
        return True

    def _create_link(
        self, source: Path, target: Path, root: Path, trees: frozenset[Path]
    ) -> bool:
        """Create a relative symlink at target pointing to source.

        Refuses to write through a directory link leading into a package
        tree or out of the target root.

        Returns:
            True on success. Any OSError turns the path into a conflict.
        """
        link_value = os.path.relpath(source, target.parent)
        if self.dry_run:
            logger.info("Dry-run: would link %s -> %s", target, link_value)
            return True

        existing = target.parent
        while existing != root and not existing.exists():
            existing = existing.parent
        landing = existing.resolve()
        inside_tree = any(landing.is_relative_to(tree) for tree in trees)
        if inside_tree or not landing.is_relative_to(root):
            logger.error("Could not link %s: %s leads to %s", target, existing, landing)
            return False

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(link_value, target)
        except OSError as e:
            logger.error("Could not link %s -> %s: %s", target, link_value, e)
            return False

        logger.info("Linked %s -> %s", target, link_value)
        return True

    def _remove_obsolete_links(
        self, package: Package, root: Path, trees: frozenset[Path]
    ) -> tuple[str, ...]:
        """Remove links into the package whose source is no longer part of it.

        Directories left empty by the removal are removed as well, except
        the target root and the directories the package still mirrors.
        """
        wanted = set(package.relative_paths)
        current = {root / rel_dir for rel_dir in package.directories()}
        keep = wanted | set(package.directories())
        removed: list[str] = []
        touched: set[Path] = set()

        for directory in self._obsolete_search_dirs(package, root, current, trees):
            try:
                entries = sorted(directory.iterdir())
            except OSError as e:
                logger.warning("Cannot list %s for obsolete links: %s", directory, e)
                continue

            for entry in entries:
                if not entry.is_symlink():
                    continue
                owned = self._owned_path(self._link_destination(entry), package)
                if owned is None or owned in keep:
                    continue

                rel = self._relative(entry, root)
                if self.dry_run:
                    logger.info("Dry-run: would remove obsolete link %s", entry)
                    removed.append(rel)
                    continue
                try:
                    entry.unlink()
                except OSError as e:
                    logger.warning("Could not remove obsolete link %s: %s", entry, e)
                    continue
                logger.info("Removed obsolete link %s from package %s", entry, package.name)
                removed.append(rel)
                touched.add(directory)

        for directory in sorted(touched, key=lambda d: len(d.parts), reverse=True):
            self._prune_empty(directory, root, current)

        return tuple(removed)

    def _obsolete_search_dirs(
        self,
        package: Package,
        root: Path,
        current: set[Path],
        trees: frozenset[Path],
    ) -> list[Path]:
        """Target directories that may hold links into the package.

        Starts from the target root and the directories mirroring the
        package's current directories. From there it descends into real
        subdirectories that hold a link into the package, or nothing but
        links and directories: what a directory dropped from the package
        leaves behind. Package trees and their ancestors are never entered.
        """
        queue = [root, *sorted(d for d in current if d.is_dir() and not d.is_symlink())]
        seen = set(queue)
        index = 0
        while index < len(queue):
            directory = queue[index]
            index += 1
            for sub in self._real_subdirs(directory):
                if sub in seen or any(
                    sub.is_relative_to(tree) or tree.is_relative_to(sub) for tree in trees
                ):
                    continue
                if self._holds_package_links(sub, package):
                    seen.add(sub)
                    queue.append(sub)
        return queue

    @staticmethod
    def _real_subdirs(directory: Path) -> list[Path]:
        try:
            with os.scandir(directory) as it:
                return sorted(
                    Path(entry.path) for entry in it if entry.is_dir(follow_symlinks=False)
                )
        except OSError as e:
            logger.warning("Cannot list %s for obsolete links: %s", directory, e)
            return []

    def _holds_package_links(self, directory: Path, package: Package) -> bool:
        """True if directory links into the package or holds only links and directories."""
        only_links = True
        try:
            with os.scandir(directory) as it:
                for entry in it:
                    if entry.is_symlink():
                        dest = self._link_destination(Path(entry.path))
                        if self._owned_path(dest, package) is not None:
                            return True
                    elif not entry.is_dir(follow_symlinks=False):
                        only_links = False
        except OSError as e:
            logger.warning("Cannot list %s for obsolete links: %s", directory, e)
            return False
        return only_links

    @staticmethod
    def _prune_empty(directory: Path, root: Path, current: set[Path]) -> None:
        """Remove directory and its empty parents up to the root or a mirrored directory."""
        while directory != root and directory not in current:
            try:
                if any(directory.iterdir()):
                    return
                directory.rmdir()
            except OSError as e:
                logger.warning("Could not remove empty directory %s: %s", directory, e)
                return
            logger.info("Removed empty directory %s", directory)
            directory = directory.parent

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_target_root(self, target_root: Path) -> Path:
        root = target_root.expanduser()
        if not root.is_dir():
            msg = f"Target root does not exist or is not a directory: {root}"
            raise TargetRootError(msg)
        if not os.access(root, os.W_OK | os.X_OK):
            msg = f"Target root is not writable: {root}"
            raise TargetRootError(msg)
        return root.resolve()

    @staticmethod
    def _log_result(result: PackageResult) -> None:
        if result.success:
            logger.info("Package %s: %s", result.package, result.outcome.value)
        else:
            logger.error(
                "Package %s: %s (%s)", result.package, result.outcome.value, result.error
            )
