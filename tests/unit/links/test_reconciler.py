"""Unit tests for LinkReconciler.

Tests linking, conflict detection and resolution, broken and obsolete
link cleanup, and dry-run behavior against real temporary directories.
"""

import os
import shutil
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest
from dotctl.core.errors import TargetRootError
from dotctl.links.models import (
    ConflictPolicy,
    Package,
    PackageOutcome,
    PackageResult,
    ReconcileMode,
    ReconciliationReport,
)
from dotctl.links.reconciler import LinkReconciler
from dotctl.links.scanner import scan_package

MakePackage = Callable[[Path, str, dict[str, str]], Path]


def _result(report: ReconciliationReport, package: str) -> PackageResult:
    return next(r for r in report.results if r.package == package)


def _snapshot(root: Path) -> list[tuple[str, str]]:
    """Describe every entry under root as (relative path, link value or kind)."""
    entries: list[tuple[str, str]] = []
    for dirpath, dirnames, filenames in os.walk(root):
        for name in sorted(dirnames + filenames):
            path = Path(dirpath) / name
            rel = path.relative_to(root).as_posix()
            if path.is_symlink():
                entries.append((rel, os.readlink(path)))
            elif path.is_dir():
                entries.append((rel, "dir"))
            else:
                entries.append((rel, "file"))
    return sorted(entries)


@pytest.fixture
def backup_root(tmp_path: Path) -> Path:
    """Backup root inside tmp_path (not created up front)."""
    return tmp_path / "backups"


@pytest.fixture
def reconciler(backup_root: Path) -> LinkReconciler:
    """Reconciler with the default backup policy."""
    return LinkReconciler(backup_root=backup_root)


@pytest.fixture
def git(dotfiles: Path) -> Package:
    """The git package from the dotfiles fixture."""
    return scan_package("git", dotfiles / "config" / "git")


@pytest.fixture
def zsh(dotfiles: Path) -> Package:
    """The zsh package from the dotfiles fixture."""
    return scan_package("zsh", dotfiles / "config" / "zsh")


class TestReconcileInitial:
    """Tests for reconcile() into an empty target root."""

    def test_two_files_create_two_links(
        self, tmp_path: Path, target: Path, make_package: MakePackage, reconciler: LinkReconciler
    ) -> None:
        """A package with two files into an empty root creates exactly two links."""
        make_package(tmp_path / "src", "shell", {".bashrc": "a", ".profile": "b"})
        package = scan_package("shell", tmp_path / "src" / "shell")

        report = reconciler.reconcile([package], target)

        result = _result(report, "shell")
        assert result.outcome == PackageOutcome.APPLIED
        assert result.linked == (".bashrc", ".profile")
        assert sorted(p.name for p in target.iterdir()) == [".bashrc", ".profile"]
        assert all((target / name).is_symlink() for name in (".bashrc", ".profile"))
        assert report.success

    def test_links_are_relative(
        self, target: Path, git: Package, reconciler: LinkReconciler
    ) -> None:
        """Links are relative and resolve to the package source."""
        reconciler.reconcile([git], target)

        link = target / ".gitconfig"
        assert not os.path.isabs(os.readlink(link))
        assert link.resolve() == git.source_for(".gitconfig").resolve()

    def test_parent_directories_are_real(
        self, target: Path, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """Missing parent directories are created as real directories."""
        reconciler.reconcile([zsh], target)

        parent = target / ".config" / "zsh"
        assert parent.is_dir()
        assert not parent.is_symlink()
        assert not (target / ".config").is_symlink()
        assert (parent / "aliases.zsh").is_symlink()

    def test_packages_processed_in_order(
        self, target: Path, git: Package, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """Results keep the caller's package order."""
        report = reconciler.reconcile([zsh, git], target)

        assert [r.package for r in report.results] == ["zsh", "git"]

    def test_idempotent(
        self, target: Path, git: Package, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """A second pass changes nothing and only reports skipped-already-current."""
        reconciler.reconcile([git, zsh], target)
        first = _snapshot(target)

        report = reconciler.reconcile([git, zsh], target)

        assert _snapshot(target) == first
        assert {r.outcome for r in report.results} == {PackageOutcome.SKIPPED_CURRENT}
        assert all(r.linked == () for r in report.results)
        assert report.backup_dir is None

    def test_idempotent_in_restow_mode(
        self, target: Path, git: Package, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """Restow over an unchanged package set is also a no-op."""
        reconciler.reconcile([git, zsh], target)
        first = _snapshot(target)

        report = reconciler.reconcile([git, zsh], target, ReconcileMode.RESTOW)

        assert _snapshot(target) == first
        assert {r.outcome for r in report.results} == {PackageOutcome.SKIPPED_CURRENT}
        assert report.obsolete_links_removed == 0

    def test_folded_parent_link_counts_as_current(
        self, target: Path, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """A target reached through a directory link into the package is current."""
        (target / ".config").symlink_to(zsh.source_root / ".config")
        (target / ".zshrc").symlink_to(zsh.source_for(".zshrc"))

        report = reconciler.reconcile([zsh], target)

        assert report.results[0].outcome == PackageOutcome.SKIPPED_CURRENT

    def test_missing_package_fails_alone(
        self, tmp_path: Path, target: Path, git: Package, reconciler: LinkReconciler
    ) -> None:
        """A missing source directory fails that package and the batch continues."""
        ghost = Package(name="ghost", source_root=tmp_path / "nope")

        report = reconciler.reconcile([ghost, git], target)

        ghost_result = _result(report, "ghost")
        assert ghost_result.outcome == PackageOutcome.FAILED_MISSING
        assert ghost_result.error is not None
        assert _result(report, "git").outcome == PackageOutcome.APPLIED
        assert not report.success
        assert report.failed == (ghost_result,)


class TestTargetRoot:
    """Tests for target root validation."""

    def test_missing_root_raises(
        self, tmp_path: Path, git: Package, reconciler: LinkReconciler
    ) -> None:
        """A missing target root is fatal."""
        with pytest.raises(TargetRootError):
            reconciler.reconcile([git], tmp_path / "does-not-exist")

    def test_file_root_raises(
        self, tmp_path: Path, git: Package, reconciler: LinkReconciler
    ) -> None:
        """A regular file as target root is fatal."""
        not_a_dir = tmp_path / "file"
        not_a_dir.write_text("x")

        with pytest.raises(TargetRootError) as exc_info:
            reconciler.reconcile([git], not_a_dir)

        assert exc_info.value.hint is not None

    def test_unwritable_root_raises(
        self, target: Path, git: Package, reconciler: LinkReconciler
    ) -> None:
        """A target root without write access is fatal."""
        with (
            patch("dotctl.links.reconciler.os.access", return_value=False),
            pytest.raises(TargetRootError, match="not writable"),
        ):
            reconciler.reconcile([git], target)


class TestDetectConflicts:
    """Tests for detect_conflicts()."""

    def test_empty_root_has_no_conflicts(
        self, target: Path, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """Nothing conflicts in an empty root."""
        assert reconciler.detect_conflicts(zsh, target) == ()

    def test_returns_exactly_the_foreign_paths(
        self, tmp_path: Path, target: Path, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """Plain files and foreign links conflict; correct links do not."""
        elsewhere = tmp_path / "elsewhere"
        elsewhere.write_text("other")
        (target / ".zshrc").write_text("mine")
        (target / ".config" / "zsh").mkdir(parents=True)
        (target / ".config" / "zsh" / "aliases.zsh").symlink_to(elsewhere)

        conflicts = reconciler.detect_conflicts(zsh, target)

        root = target.resolve()
        assert set(conflicts) == {root / ".config" / "zsh" / "aliases.zsh", root / ".zshrc"}

    def test_correct_link_is_not_a_conflict(
        self, target: Path, git: Package, reconciler: LinkReconciler
    ) -> None:
        """An existing correct link is not reported."""
        (target / ".gitconfig").symlink_to(git.source_for(".gitconfig"))

        assert reconciler.detect_conflicts(git, target) == ()

    def test_dangling_top_level_link_is_not_a_conflict(
        self, tmp_path: Path, target: Path, git: Package, reconciler: LinkReconciler
    ) -> None:
        """A dangling link at the top level is cleaned up, not a conflict."""
        (target / ".gitconfig").symlink_to(tmp_path / "gone")

        assert reconciler.detect_conflicts(git, target) == ()

    def test_file_ancestor_is_the_conflict(
        self, target: Path, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """A regular file where a directory is needed is reported once."""
        (target / ".zshrc").symlink_to(zsh.source_for(".zshrc"))
        (target / ".config").write_text("not a directory")

        conflicts = reconciler.detect_conflicts(zsh, target)

        assert conflicts == (target.resolve() / ".config",)

    def test_is_read_only(self, target: Path, zsh: Package, reconciler: LinkReconciler) -> None:
        """Detection never changes the target root."""
        (target / ".zshrc").write_text("mine")
        before = _snapshot(target)

        reconciler.detect_conflicts(zsh, target)

        assert _snapshot(target) == before


class TestBrokenLinks:
    """Tests for broken link cleanup."""

    def test_broken_link_removed_before_linking(
        self, tmp_path: Path, target: Path, git: Package, reconciler: LinkReconciler
    ) -> None:
        """A dangling link at a wanted path is removed and replaced, not a conflict."""
        (target / ".gitconfig").symlink_to(tmp_path / "gone")

        report = reconciler.reconcile([git], target)

        result = report.results[0]
        assert result.outcome == PackageOutcome.APPLIED
        assert result.conflicts == ()
        assert report.broken_links_removed == 1
        assert (target / ".gitconfig").resolve() == git.source_for(".gitconfig").resolve()

    def test_remove_broken_links_counts_top_level_only(
        self, tmp_path: Path, target: Path, reconciler: LinkReconciler
    ) -> None:
        """Only immediate children of the target root are cleaned."""
        (target / ".old").symlink_to(tmp_path / "gone")
        (target / "sub").mkdir()
        (target / "sub" / "nested").symlink_to(tmp_path / "gone")
        (target / ".ok").symlink_to(target / "sub")

        removed = reconciler.remove_broken_links(target)

        assert removed == 1
        assert not (target / ".old").is_symlink()
        assert (target / "sub" / "nested").is_symlink()
        assert (target / ".ok").is_symlink()


class TestResolveConflicts:
    """Tests for resolve_conflicts()."""

    def test_backup_single_conflict(
        self, target: Path, git: Package, reconciler: LinkReconciler, backup_root: Path
    ) -> None:
        """One plain file is backed up and replaced with a link."""
        (target / ".gitconfig").write_text("my settings")
        conflicts = reconciler.detect_conflicts(git, target)
        assert conflicts == (target.resolve() / ".gitconfig",)

        report = reconciler.resolve_conflicts(git, conflicts, ConflictPolicy.BACKUP, target)

        assert report.backup_dir is not None
        assert report.backup_dir.parent == backup_root
        assert (report.backup_dir / ".gitconfig").read_text() == "my settings"
        assert (target / ".gitconfig").is_symlink()
        result = report.results[0]
        assert result.outcome == PackageOutcome.APPLIED_WITH_BACKUPS
        assert result.backed_up == (".gitconfig",)

    def test_backup_groups_all_conflicts(
        self, target: Path, zsh: Package, reconciler: LinkReconciler, backup_root: Path
    ) -> None:
        """N conflicts resolved in one call share exactly one new backup directory."""
        (target / ".zshrc").write_text("1")
        (target / ".config" / "zsh").mkdir(parents=True)
        (target / ".config" / "zsh" / "aliases.zsh").write_text("2")
        conflicts = reconciler.detect_conflicts(zsh, target)
        assert len(conflicts) == 2

        report = reconciler.resolve_conflicts(zsh, conflicts, ConflictPolicy.BACKUP, target)

        assert list(backup_root.iterdir()) == [report.backup_dir]
        assert report.backup_dir is not None
        assert (report.backup_dir / ".zshrc").read_text() == "1"
        assert (report.backup_dir / ".config" / "zsh" / "aliases.zsh").read_text() == "2"

    def test_backup_directory_is_always_new(
        self, target: Path, git: Package, reconciler: LinkReconciler, backup_root: Path
    ) -> None:
        """A second pass in the same second gets a suffixed directory."""
        fixed = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
        (backup_root / "20260102T030405Z").mkdir(parents=True)
        (target / ".gitconfig").write_text("x")

        with patch("dotctl.links.reconciler.datetime") as mock_datetime:
            mock_datetime.now.return_value = fixed
            report = reconciler.resolve_conflicts(
                git, [target / ".gitconfig"], ConflictPolicy.BACKUP, target
            )

        assert report.backup_dir == backup_root / "20260102T030405Z-1"

    def test_only_listed_conflicts_are_resolved(
        self, target: Path, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """Conflicts not passed in are left in place."""
        (target / ".zshrc").write_text("1")
        (target / ".config" / "zsh").mkdir(parents=True)
        (target / ".config" / "zsh" / "aliases.zsh").write_text("2")

        report = reconciler.resolve_conflicts(
            zsh, [target / ".zshrc"], ConflictPolicy.BACKUP, target
        )

        assert (target / ".zshrc").is_symlink()
        assert not (target / ".config" / "zsh" / "aliases.zsh").is_symlink()
        assert report.results[0].backed_up == (".zshrc",)

    def test_adopt_moves_file_into_package(
        self, target: Path, git: Package, backup_root: Path
    ) -> None:
        """Adopt replaces the package file with the user's file and links it."""
        (target / ".gitconfig").write_text("user version")
        reconciler = LinkReconciler(policy=ConflictPolicy.ADOPT, backup_root=backup_root)

        report = reconciler.reconcile([git], target)

        result = report.results[0]
        assert result.adopted == (".gitconfig",)
        assert result.outcome == PackageOutcome.APPLIED_WITH_BACKUPS
        assert git.source_for(".gitconfig").read_text() == "user version"
        assert (target / ".gitconfig").is_symlink()
        assert not backup_root.exists()

    def test_adopt_refuses_foreign_link(
        self, tmp_path: Path, target: Path, git: Package, backup_root: Path
    ) -> None:
        """Adopt leaves a link to another location as a conflict."""
        elsewhere = tmp_path / "elsewhere"
        elsewhere.write_text("x")
        (target / ".gitconfig").symlink_to(elsewhere)
        reconciler = LinkReconciler(policy=ConflictPolicy.ADOPT, backup_root=backup_root)

        report = reconciler.reconcile([git], target)

        assert report.results[0].outcome == PackageOutcome.FAILED_CONFLICT
        assert (target / ".gitconfig").resolve() == elsewhere.resolve()

    def test_abort_leaves_package_untouched(
        self, target: Path, zsh: Package, backup_root: Path
    ) -> None:
        """Abort links nothing in a package that has any conflict."""
        (target / ".zshrc").write_text("mine")
        reconciler = LinkReconciler(policy=ConflictPolicy.ABORT, backup_root=backup_root)

        report = reconciler.reconcile([zsh], target)

        result = report.results[0]
        assert result.outcome == PackageOutcome.FAILED_CONFLICT
        assert result.conflicts == (".zshrc",)
        assert (target / ".zshrc").read_text() == "mine"
        assert not (target / ".config").exists()
        assert not backup_root.exists()

    def test_abort_policy_in_resolve_conflicts(
        self, target: Path, git: Package, reconciler: LinkReconciler
    ) -> None:
        """resolve_conflicts with ABORT reports the conflicts and changes nothing."""
        (target / ".gitconfig").write_text("mine")
        conflicts = reconciler.detect_conflicts(git, target)

        report = reconciler.resolve_conflicts(git, conflicts, ConflictPolicy.ABORT, target)

        assert not report.success
        assert report.backup_dir is None
        assert (target / ".gitconfig").read_text() == "mine"

    def test_file_ancestor_is_backed_up(
        self, target: Path, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """A file blocking a directory is backed up and the directory created."""
        (target / ".config").write_text("not a directory")

        report = reconciler.reconcile([zsh], target)

        result = report.results[0]
        assert result.backed_up == (".config",)
        assert (target / ".config").is_dir()
        assert (target / ".config" / "zsh" / "aliases.zsh").is_symlink()


class TestRestow:
    """Tests for RESTOW mode."""

    def test_removes_exactly_the_obsolete_link(
        self, tmp_path: Path, target: Path, make_package: MakePackage, reconciler: LinkReconciler
    ) -> None:
        """Dropping one of three files removes one link and keeps the other two."""
        package_dir = make_package(tmp_path / "src", "tools", {".a": "a", ".b": "b", ".c": "c"})
        reconciler.reconcile([scan_package("tools", package_dir)], target)

        (package_dir / ".c").unlink()
        report = reconciler.reconcile(
            [scan_package("tools", package_dir)], target, ReconcileMode.RESTOW
        )

        result = report.results[0]
        assert result.obsolete_removed == (".c",)
        assert result.outcome == PackageOutcome.SKIPPED_CURRENT
        assert report.obsolete_links_removed == 1
        assert report.broken_links_removed == 0
        assert not (target / ".c").is_symlink()
        assert (target / ".a").is_symlink()
        assert (target / ".b").is_symlink()

    def test_removes_nested_obsolete_link(
        self, tmp_path: Path, target: Path, make_package: MakePackage, reconciler: LinkReconciler
    ) -> None:
        """Obsolete links inside mirrored directories are removed."""
        package_dir = make_package(
            tmp_path / "src", "app", {".config/app/x": "x", ".config/app/y": "y"}
        )
        reconciler.reconcile([scan_package("app", package_dir)], target)

        (package_dir / ".config" / "app" / "y").unlink()
        report = reconciler.reconcile(
            [scan_package("app", package_dir)], target, ReconcileMode.RESTOW
        )

        assert report.results[0].obsolete_removed == (".config/app/y",)
        assert not (target / ".config" / "app" / "y").is_symlink()
        assert (target / ".config" / "app" / "x").is_symlink()

    def test_keeps_links_owned_by_others(
        self, tmp_path: Path, target: Path, git: Package, reconciler: LinkReconciler
    ) -> None:
        """Links that do not point into the package are never removed."""
        elsewhere = tmp_path / "elsewhere"
        elsewhere.write_text("x")
        (target / ".foreign").symlink_to(elsewhere)

        report = reconciler.reconcile([git], target, ReconcileMode.RESTOW)

        assert (target / ".foreign").is_symlink()
        assert report.obsolete_links_removed == 0

    def test_initial_mode_keeps_obsolete_links(
        self, tmp_path: Path, target: Path, make_package: MakePackage, reconciler: LinkReconciler
    ) -> None:
        """Without restow, nested obsolete links stay."""
        package_dir = make_package(tmp_path / "src", "app", {"d/x": "x", "d/y": "y"})
        reconciler.reconcile([scan_package("app", package_dir)], target)

        (package_dir / "d" / "y").unlink()
        report = reconciler.reconcile([scan_package("app", package_dir)], target)

        assert report.obsolete_links_removed == 0
        assert (target / "d" / "y").is_symlink()

    def test_removes_links_of_dropped_subdirectory(
        self, tmp_path: Path, target: Path, make_package: MakePackage, reconciler: LinkReconciler
    ) -> None:
        """Links left in a directory the package no longer has are removed with it."""
        package_dir = make_package(
            tmp_path / "src",
            "app",
            {".vimrc": "v", ".config/foo/a.conf": "a", ".config/bar/b.conf": "b"},
        )
        reconciler.reconcile([scan_package("app", package_dir)], target)

        shutil.rmtree(package_dir / ".config" / "foo")
        report = reconciler.reconcile(
            [scan_package("app", package_dir)], target, ReconcileMode.RESTOW
        )

        assert report.results[0].obsolete_removed == (".config/foo/a.conf",)
        assert report.obsolete_links_removed == 1
        assert not (target / ".config" / "foo").exists()
        assert (target / ".config" / "bar" / "b.conf").is_symlink()
        assert (target / ".vimrc").is_symlink()

    def test_removes_links_of_dropped_top_level_directory(
        self, tmp_path: Path, target: Path, make_package: MakePackage, reconciler: LinkReconciler
    ) -> None:
        """A whole directory tree dropped from the package disappears from the target."""
        package_dir = make_package(
            tmp_path / "src", "vim", {".vimrc": "v", ".vim/colors/dark.vim": "d"}
        )
        reconciler.reconcile([scan_package("vim", package_dir)], target)

        shutil.rmtree(package_dir / ".vim")
        report = reconciler.reconcile(
            [scan_package("vim", package_dir)], target, ReconcileMode.RESTOW
        )

        assert report.results[0].obsolete_removed == (".vim/colors/dark.vim",)
        assert not (target / ".vim").exists()
        assert (target / ".vimrc").is_symlink()

    def test_keeps_user_files_next_to_dropped_links(
        self, tmp_path: Path, target: Path, make_package: MakePackage, reconciler: LinkReconciler
    ) -> None:
        """A directory still holding user files is kept after its links are removed."""
        package_dir = make_package(
            tmp_path / "src", "app", {".vimrc": "v", ".config/foo/a.conf": "a"}
        )
        reconciler.reconcile([scan_package("app", package_dir)], target)
        (target / ".config" / "foo" / "cache").write_text("user data")

        shutil.rmtree(package_dir / ".config")
        report = reconciler.reconcile(
            [scan_package("app", package_dir)], target, ReconcileMode.RESTOW
        )

        assert report.results[0].obsolete_removed == (".config/foo/a.conf",)
        assert not (target / ".config" / "foo" / "a.conf").is_symlink()
        assert (target / ".config" / "foo" / "cache").read_text() == "user data"

    def test_never_descends_into_package_trees(
        self, target: Path, make_package: MakePackage, reconciler: LinkReconciler
    ) -> None:
        """Links stored inside a source tree under the target root are left alone."""
        source = target / ".dotfiles" / "config"
        package_dir = make_package(source, "app", {".a": "a", "nested/.b": "b"})
        reconciler.reconcile([scan_package("app", package_dir)], target)
        (source / "stash").mkdir()
        (source / "stash" / "old").symlink_to(package_dir / "gone")

        report = reconciler.reconcile(
            [scan_package("app", package_dir)], target, ReconcileMode.RESTOW
        )

        assert report.obsolete_links_removed == 0
        assert (source / "stash" / "old").is_symlink()


class TestFoldedDirectories:
    """Tests for directory links standing in for a whole package directory."""

    @pytest.fixture
    def nvim(self, dotfiles: Path, make_package: MakePackage) -> Package:
        """A package sharing .config with the zsh package."""
        package_dir = make_package(dotfiles / "config", "nvim", {".config/nvim/init.lua": "x"})
        return scan_package("nvim", package_dir)

    def test_fold_of_another_package_is_split(
        self, target: Path, nvim: Package, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """Linking through another package's folded directory splits it first."""
        (target / ".config").symlink_to(zsh.source_root / ".config")

        report = reconciler.reconcile([nvim, zsh], target)

        assert report.success
        assert (target / ".config").is_dir()
        assert not (target / ".config").is_symlink()
        init = target / ".config" / "nvim" / "init.lua"
        assert init.resolve() == nvim.source_for(".config/nvim/init.lua").resolve()
        aliases = target / ".config" / "zsh" / "aliases.zsh"
        assert aliases.resolve() == zsh.source_for(".config/zsh/aliases.zsh").resolve()
        assert not (zsh.source_root / ".config" / "nvim").exists()
        assert sorted(p.name for p in (zsh.source_root / ".config").iterdir()) == ["zsh"]

    def test_fold_is_not_a_conflict(
        self, target: Path, nvim: Package, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """Detection reports nothing for a fold that reconcile() would split."""
        (target / ".config").symlink_to(zsh.source_root / ".config")
        before = _snapshot(target)

        assert reconciler.detect_conflicts(nvim, target, others=[zsh]) == ()
        assert _snapshot(target) == before

    def test_dry_run_keeps_fold(
        self, target: Path, nvim: Package, zsh: Package, backup_root: Path
    ) -> None:
        """Dry run reports the links but leaves the fold and the other package alone."""
        (target / ".config").symlink_to(zsh.source_root / ".config")
        before = _snapshot(target)
        reconciler = LinkReconciler(backup_root=backup_root, dry_run=True)

        report = reconciler.reconcile([nvim, zsh], target)

        assert _result(report, "nvim").outcome == PackageOutcome.APPLIED
        assert _snapshot(target) == before
        assert not (zsh.source_root / ".config" / "nvim").exists()

    def test_fold_that_cannot_be_split_is_a_conflict(
        self, target: Path, nvim: Package, zsh: Package, backup_root: Path
    ) -> None:
        """A fold that stays in place blocks the package instead of being written through."""
        (target / ".config").symlink_to(zsh.source_root / ".config")
        reconciler = LinkReconciler(policy=ConflictPolicy.ABORT, backup_root=backup_root)

        with patch.object(LinkReconciler, "_unfold", return_value=False):
            report = reconciler.reconcile([nvim, zsh], target)

        nvim_result = _result(report, "nvim")
        assert nvim_result.outcome == PackageOutcome.FAILED_CONFLICT
        assert nvim_result.conflicts == (".config",)
        assert not (zsh.source_root / ".config" / "nvim").exists()

    def test_directory_link_leaving_target_is_a_conflict(
        self, tmp_path: Path, target: Path, zsh: Package, backup_root: Path
    ) -> None:
        """With abort, a directory link out of the target root blocks its subtree."""
        outside = tmp_path / "outside"
        outside.mkdir()
        (target / ".config").symlink_to(outside)
        reconciler = LinkReconciler(policy=ConflictPolicy.ABORT, backup_root=backup_root)

        report = reconciler.reconcile([zsh], target)

        result = report.results[0]
        assert result.outcome == PackageOutcome.FAILED_CONFLICT
        assert result.conflicts == (".config",)
        assert list(outside.iterdir()) == []

    def test_directory_link_leaving_target_is_backed_up(
        self, tmp_path: Path, target: Path, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """With backup, the link is moved away and a real directory takes its place."""
        outside = tmp_path / "outside"
        outside.mkdir()
        (target / ".config").symlink_to(outside)

        report = reconciler.reconcile([zsh], target)

        result = report.results[0]
        assert result.backed_up == (".config",)
        assert (target / ".config").is_dir()
        assert not (target / ".config").is_symlink()
        assert (target / ".config" / "zsh" / "aliases.zsh").is_symlink()
        assert list(outside.iterdir()) == []


class TestLinkFailures:
    """Tests for links that cannot be created."""

    def test_failed_link_is_reported_and_others_proceed(
        self, target: Path, zsh: Package, reconciler: LinkReconciler
    ) -> None:
        """An OSError on one link fails only that path."""
        real_symlink = os.symlink

        def symlink(src: str, dst: Path, *args: object, **kwargs: object) -> None:
            if Path(dst).name == ".zshrc":
                raise PermissionError("permission denied")
            real_symlink(src, dst, *args, **kwargs)  # type: ignore[arg-type]

        with patch("dotctl.links.reconciler.os.symlink", side_effect=symlink):
            report = reconciler.reconcile([zsh], target)

        result = report.results[0]
        assert result.outcome == PackageOutcome.FAILED_CONFLICT
        assert result.conflicts == (".zshrc",)
        assert result.linked == (".config/zsh/aliases.zsh",)
        assert result.error == "1 path(s) could not be linked"
        assert (target / ".config" / "zsh" / "aliases.zsh").is_symlink()
        assert not (target / ".zshrc").exists()
        assert not report.success


class TestDryRun:
    """Tests for dry-run mode."""

    def test_changes_nothing(
        self, tmp_path: Path, target: Path, git: Package, zsh: Package, backup_root: Path
    ) -> None:
        """Dry run reports planned outcomes without touching the filesystem."""
        (target / ".zshrc").write_text("mine")
        (target / ".stale").symlink_to(tmp_path / "gone")
        before = _snapshot(target)
        reconciler = LinkReconciler(backup_root=backup_root, dry_run=True)

        report = reconciler.reconcile([git, zsh], target)

        assert _snapshot(target) == before
        assert report.dry_run
        assert report.backup_dir is None
        assert report.broken_links_removed == 1
        assert _result(report, "git").outcome == PackageOutcome.APPLIED
        zsh_result = _result(report, "zsh")
        assert zsh_result.outcome == PackageOutcome.APPLIED_WITH_BACKUPS
        assert not backup_root.exists()
