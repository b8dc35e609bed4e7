"""Provisioning run orchestrator.

Drives one run through its stages:

    probe_platform -> check_first_run -> install_packages -> reconcile_links
        -> apply_settings -> verify_configuration -> save_state

Fatal errors (unsupported platform, missing source tree, unwritable
target root) propagate as DotctlError before the installation record is
touched. Everything after them is best-effort: per-package failures,
settings errors and verification warnings are logged and reported in the
RunResult, and the remaining stages still run.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotctl.core.config import DotctlConfig, PolicyName
from dotctl.core.confirm import Confirmer
from dotctl.core.errors import SourceTreeMissingError, StateError
from dotctl.core.platform import Platform, get_platform
from dotctl.core.settings import ShellProfile, apply_settings
from dotctl.core.state import StateStore
from dotctl.core.verifier import ConfigVerifier, VerificationReport
from dotctl.installers.base import Installer, InstallResult
from dotctl.links.models import ConflictPolicy, Package, ReconcileMode, ReconciliationReport
from dotctl.links.reconciler import LinkReconciler
from dotctl.links.scanner import discover_source_tree
from dotctl.models.record import InstallationRecord, create_record

logger = logging.getLogger(__name__)

BREW_MARKER = "# dotctl: Homebrew"

FIRST_RUN_PROMPT = "This will install packages and link your dotfiles into {target}. Continue?"


class RunStatus(str, Enum):
    """Final status of a run."""

    DONE = "done"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Per-invocation overrides of the configuration.

    Attributes:
        target: Link target root override.
        source: Dotfiles source tree override.
        yes: Skip the first-run confirmation.
        skip_packages: Do not run the package installer.
        skip_links: Do not reconcile links.
        policy: Conflict policy override.
        dry_run: Report what would happen without changing anything.
    """

    target: Path | None = None
    source: Path | None = None
    yes: bool = False
    skip_packages: bool = False
    skip_links: bool = False
    policy: PolicyName | None = None
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of one run.

    Attributes:
        status: DONE, or CANCELLED when the first-run gate was declined.
        first_run: Whether no valid installation record existed.
        platform: Detected platform.
        install_result: Package install outcome, None if not attempted.
        report: Reconciliation report, None if links were skipped.
        verification: Verification report, None if the run was cancelled.
        record: Saved installation record, None if not saved.
        settings_changes: Descriptions of shell profile edits.
        state_error: Message if the record could not be saved.
    """

    status: RunStatus
    first_run: bool
    platform: Platform
    install_result: InstallResult | None = None
    report: ReconciliationReport | None = None
    verification: VerificationReport | None = None
    record: InstallationRecord | None = None
    settings_changes: tuple[str, ...] = ()
    state_error: str | None = None

    @property
    def success(self) -> bool:
        """Check if the run finished without package or state failures."""
        if self.status is not RunStatus.DONE:
            return False
        if self.report is not None and not self.report.success:
            return False
        return self.state_error is None


class Orchestrator:
    """Runs the provisioning stages against injected collaborators."""

    def __init__(
        self,
        config: DotctlConfig,
        *,
        state_store: StateStore,
        reconciler: LinkReconciler,
        verifier: ConfigVerifier,
        installer: Installer | None,
        confirmer: Confirmer,
        platform_probe: Callable[[], Platform] = get_platform,
    ) -> None:
        self.config = config
        self.state_store = state_store
        self.reconciler = reconciler
        self.verifier = verifier
        self.installer = installer
        self.confirmer = confirmer
        self._platform_probe = platform_probe

    def run(self, options: RunOptions | None = None) -> RunResult:
        """Execute one provisioning run.

        Args:
            options: Per-invocation overrides.

        Returns:
            RunResult describing every stage.

        Raises:
            UnsupportedPlatformError: If the host is not supported.
            SourceTreeMissingError: If the source tree does not exist.
            TargetRootError: If the target root is missing or not writable.
        """
        options = options or RunOptions()
        config = self._effective_config(options)
        target_root = config.links.target_root
        dry_run = options.dry_run

        logger.info("Stage: probe_platform")
        platform = self._platform_probe()
        logger.info("Detected platform %s", platform)

        logger.info("Stage: check_first_run")
        first_run = self.state_store.is_first_run()
        logger.info("First run: %s", first_run)
        if first_run and options.yes:
            logger.info("First-run confirmation skipped (--yes)")
        elif first_run and not dry_run:
            prompt = FIRST_RUN_PROMPT.format(target=target_root)
            if not self.confirmer.confirm(prompt):
                logger.warning("Run cancelled at first-run confirmation")
                return RunResult(status=RunStatus.CANCELLED, first_run=True, platform=platform)

        packages = self._discover(config) if not options.skip_links else []

        install_result = None
        if options.skip_packages:
            logger.info("Stage: install_packages (skipped)")
        else:
            logger.info("Stage: install_packages")
            install_result = self._install_packages(config, target_root, dry_run=dry_run)

        report = None
        if options.skip_links:
            logger.info("Stage: reconcile_links (skipped)")
        else:
            # A record file that no longer parses still means links from an earlier run
            previous_run = self.state_store.has_record_file()
            mode = ReconcileMode.RESTOW if previous_run else ReconcileMode.INITIAL
            logger.info("Stage: reconcile_links (mode=%s)", mode.value)
            self.reconciler.policy = ConflictPolicy(config.links.policy)
            self.reconciler.dry_run = dry_run
            report = self.reconciler.reconcile(packages, target_root, mode)

        logger.info("Stage: apply_settings")
        settings_changes: list[str] = []
        if dry_run:
            logger.info("Dry run: shell profile left unchanged")
        else:
            try:
                settings_changes = apply_settings(config.settings, target_root)
            except OSError as e:
                logger.error("Could not apply settings: %s", e)

        logger.info("Stage: verify_configuration")
        manifest = config.manifest_path
        checked_manifest = None if options.skip_packages or not manifest.is_file() else manifest
        verification = self.verifier.verify(
            packages,
            target_root,
            settings=config.settings,
            expected_links=config.verify.expected_links,
            manifest=checked_manifest,
        )

        record = None
        state_error = None
        if dry_run:
            logger.info("Stage: save_state (skipped, dry run)")
        else:
            logger.info("Stage: save_state")
            try:
                record = self.state_store.save(
                    create_record(str(config.links.source_dir.expanduser()), str(platform))
                )
            except StateError as e:
                logger.error("%s", e)
                state_error = str(e)

        logger.info("Run finished")
        return RunResult(
            status=RunStatus.DONE,
            first_run=first_run,
            platform=platform,
            install_result=install_result,
            report=report,
            verification=verification,
            record=record,
            settings_changes=tuple(settings_changes),
            state_error=state_error,
        )

    def _effective_config(self, options: RunOptions) -> DotctlConfig:
        links = self.config.links
        updates: dict[str, object] = {}
        if options.source is not None:
            updates["source_dir"] = options.source
        if options.target is not None:
            updates["target_dir"] = options.target
        if options.policy is not None:
            updates["policy"] = options.policy
        if not updates:
            return self.config
        return self.config.model_copy(update={"links": links.model_copy(update=updates)})

    def _discover(self, config: DotctlConfig) -> list[Package]:
        packages_dir = config.links.packages_dir
        if not packages_dir.is_dir():
            msg = f"Dotfiles source tree not found: {packages_dir}"
            raise SourceTreeMissingError(msg)
        links = config.links
        return discover_source_tree(
            links.source_dir.expanduser(),
            links.packages_subdir,
            links.packages,
            links.ignore,
            links.bin_dir,
        )

    def _install_packages(
        self, config: DotctlConfig, target_root: Path, *, dry_run: bool
    ) -> InstallResult | None:
        manifest = config.manifest_path
        if self.installer is None or not self.installer.is_available():
            logger.warning("No package installer available, skipping %s", manifest)
            return None
        if not manifest.is_file():
            logger.warning("Package manifest not found: %s", manifest)
            return None
        if dry_run:
            logger.info("Dry run: would install packages from %s", manifest)
            return None

        result = self.installer.install(manifest)
        if result.failed:
            logger.error("Package installation failed: %s", result.error)
            return result

        shellenv = self.installer.shellenv_line()
        if shellenv is not None:
            profile = ShellProfile(config.settings.resolve_shell_profile(target_root))
            try:
                profile.ensure_block(BREW_MARKER, [shellenv])
            except OSError as e:
                logger.error("Could not update %s: %s", profile.path, e)
        return result

