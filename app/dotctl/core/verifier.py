"""Configuration verifier.

Read-only audit run after reconciliation. Every check reports present or
missing; a missing item is logged as a warning and never changes the
outcome of the run.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from dotctl.core.config import SettingsConfig
from dotctl.core.settings import ShellProfile, has_path_dir
from dotctl.installers.base import Installer
from dotctl.links.models import Package

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VerificationCheck:
    """Result of a single audit check.

    Attributes:
        name: Human-readable check name.
        passed: Whether the expected item is present.
        detail: What was found or what is missing.
    """

    name: str
    passed: bool
    detail: str = ""


@dataclass(frozen=True, slots=True)
class VerificationReport:
    """All audit checks of one verification pass."""

    checks: tuple[VerificationCheck, ...] = ()

    @property
    def passed(self) -> int:
        """Number of passing checks."""
        return sum(1 for c in self.checks if c.passed)

    @property
    def warnings(self) -> int:
        """Number of failing checks."""
        return sum(1 for c in self.checks if not c.passed)

    @property
    def ok(self) -> bool:
        """Check if every audit check passed."""
        return self.warnings == 0


class ConfigVerifier:
    """Audits links and settings against what the run was supposed to apply.

    Attributes:
        installer: Installer asked whether the bundle manifest is satisfied.
        state_path: Installation record that must exist.
        log_path: Setup log that must exist.
    """

    def __init__(
        self,
        installer: Installer | None = None,
        state_path: Path | None = None,
        log_path: Path | None = None,
    ) -> None:
        self.installer = installer
        self.state_path = state_path
        self.log_path = log_path

    def verify(
        self,
        packages: Sequence[Package],
        target_root: Path,
        settings: SettingsConfig | None = None,
        expected_links: Sequence[str] = (),
        manifest: Path | None = None,
    ) -> VerificationReport:
        """Run every check.

        Args:
            packages: Packages that were supposed to be applied.
            target_root: Directory holding the links.
            settings: Settings whose shell profile edits are checked.
            expected_links: Extra paths relative to target_root that must be
                links; "a|b" passes when either is a link.
            manifest: Bundle manifest checked with the installer.

        Returns:
            VerificationReport. Never raises.
        """
        logger.info("Verifying configuration in %s", target_root)
        checks: list[VerificationCheck] = []

        for package in packages:
            name = f"package {package.name}"
            checks.append(self._guard(name, self._check_package, package, target_root))

        for expected in expected_links:
            checks.append(self._guard(expected, self._check_link, expected, target_root))

        if settings is not None:
            for directory in settings.path_dirs:
                name = f"PATH includes {directory}"
                checks.append(
                    self._guard(name, self._check_path, settings, directory, target_root)
                )

        if manifest is not None and self.installer is not None:
            bundle = self._check_bundle(self.installer, manifest)
            if bundle is not None:
                checks.append(bundle)

        if self.state_path is not None:
            checks.append(self._guard("installation record", self._check_file, self.state_path))
        if self.log_path is not None:
            checks.append(self._guard("setup log", self._check_file, self.log_path))

        report = VerificationReport(checks=tuple(checks))
        for check in report.checks:
            if check.passed:
                logger.info("Check passed: %s", check.name)
            else:
                logger.warning("Check failed: %s (%s)", check.name, check.detail)
        logger.info(
            "Configuration verification: %d passed, %d warnings", report.passed, report.warnings
        )
        return report

    @staticmethod
    def _guard(
        name: str, check: Callable[..., VerificationCheck], *args: object
    ) -> VerificationCheck:
        try:
            return check(name, *args)
        except (OSError, RuntimeError) as e:
            return VerificationCheck(name=name, passed=False, detail=str(e))

    @staticmethod
    def _check_package(name: str, package: Package, target_root: Path) -> VerificationCheck:
        if not package.exists:
            return VerificationCheck(name=name, passed=False, detail="package source missing")

        missing: list[str] = []
        for rel in package.relative_paths:
            target = target_root / rel
            if target.resolve() != package.source_for(rel).resolve():
                missing.append(rel)

        if missing:
            shown = ", ".join(missing[:3]) + (" ..." if len(missing) > 3 else "")
            return VerificationCheck(
                name=name, passed=False, detail=f"{len(missing)} link(s) missing: {shown}"
            )
        return VerificationCheck(
            name=name, passed=True, detail=f"{len(package.relative_paths)} link(s) present"
        )

    @staticmethod
    def _check_link(name: str, expected: str, target_root: Path) -> VerificationCheck:
        alternatives = [alt.strip() for alt in expected.split("|") if alt.strip()]
        for alt in alternatives:
            if (target_root / alt).is_symlink():
                return VerificationCheck(name=name, passed=True, detail=f"{alt} is a link")
        return VerificationCheck(name=name, passed=False, detail="not a link")

    @staticmethod
    def _check_bundle(installer: Installer, manifest: Path) -> VerificationCheck | None:
        """Check the manifest, or return None if the installer cannot tell."""
        name = "package bundle"
        satisfied = installer.check(manifest)
        if satisfied is None:
            return None
        if satisfied:
            return VerificationCheck(name=name, passed=True, detail=f"{manifest} satisfied")
        return VerificationCheck(
            name=name, passed=False, detail=f"{installer.name} packages missing from {manifest}"
        )

    @staticmethod
    def _check_file(name: str, path: Path) -> VerificationCheck:
        if path.is_file():
            return VerificationCheck(name=name, passed=True, detail=str(path))
        return VerificationCheck(name=name, passed=False, detail=f"{path} not found")

    @staticmethod
    def _check_path(
        name: str, settings: SettingsConfig, directory: str, target_root: Path
    ) -> VerificationCheck:
        profile = ShellProfile(settings.resolve_shell_profile(target_root))
        if has_path_dir(profile, directory):
            return VerificationCheck(name=name, passed=True, detail=str(profile.path))
        return VerificationCheck(name=name, passed=False, detail=f"missing from {profile.path}")
