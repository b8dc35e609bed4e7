"""Apply command implementation.

Provisions the machine: installs the package bundle, links every dotfiles
package into the target root, applies the global shell settings and
records the installation.
"""

from pathlib import Path
from typing import Annotated

import typer

from dotctl.cli.display import (
    create_report_table,
    create_verification_table,
    print_conflicts,
    print_report_summary,
)
from dotctl.cli.types import (
    EXIT_CANCELLED,
    PolicyChoice,
    exit_fatal,
    load_config_or_exit,
)
from dotctl.core.config import DotctlConfig
from dotctl.core.confirm import get_confirmer
from dotctl.core.errors import DotctlError
from dotctl.core.orchestrator import Orchestrator, RunOptions, RunResult, RunStatus
from dotctl.core.state import StateStore
from dotctl.core.verifier import ConfigVerifier
from dotctl.installers.brew import BrewInstaller
from dotctl.links.models import ConflictPolicy
from dotctl.links.reconciler import LinkReconciler
from dotctl.utils.formatting import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Install packages and link dotfiles into place.",
    invoke_without_command=True,
)


def _build_orchestrator(config: DotctlConfig, *, yes: bool, dry_run: bool) -> Orchestrator:
    """Wire the orchestrator with its production collaborators."""
    installer = BrewInstaller()
    return Orchestrator(
        config,
        state_store=StateStore(),
        reconciler=LinkReconciler(
            policy=ConflictPolicy(config.links.policy),
            dry_run=dry_run,
        ),
        verifier=ConfigVerifier(installer=installer),
        installer=installer,
        confirmer=get_confirmer(yes),
    )


def _show_result(result: RunResult) -> None:
    """Print every stage outcome of a finished run.

    Args:
        result: Result returned by Orchestrator.run().
    """
    console.print(f"[muted]Platform: {result.platform}[/muted]")

    install = result.install_result
    if install is not None:
        if install.success:
            print_success(install.message or "Packages installed.")
        else:
            print_warning(f"Package installation failed: {install.error}")

    if result.report is not None:
        console.print()
        console.print(create_report_table(result.report))
        print_conflicts(result.report)
        print_report_summary(result.report)

    for change in result.settings_changes:
        print_info(change)

    verification = result.verification
    if verification is not None and verification.checks:
        console.print()
        console.print(create_verification_table(verification))
        if not verification.ok:
            print_warning(f"{verification.warnings} verification check(s) did not pass.")

    if result.state_error is not None:
        print_error(f"Installation record not saved: {result.state_error}")
    elif result.record is not None:
        print_info(f"Installation recorded for {result.record.install_path}")


@app.callback(invoke_without_command=True)
def apply_dotfiles(
    ctx: typer.Context,
    target: Annotated[
        Path | None,
        typer.Option(
            "--target",
            "-t",
            help="Directory that receives the links (default: home directory).",
        ),
    ] = None,
    source: Annotated[
        Path | None,
        typer.Option(
            "--source",
            "-s",
            help="Dotfiles source tree (default: ~/.dotfiles or $DOTFILES_DIR).",
        ),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip the first-run confirmation prompt.",
        ),
    ] = False,
    skip_packages: Annotated[
        bool,
        typer.Option(
            "--skip-packages",
            envvar="SKIP_HOMEBREW",
            help="Do not install the package bundle.",
        ),
    ] = False,
    skip_links: Annotated[
        bool,
        typer.Option(
            "--skip-links",
            help="Do not link dotfiles packages.",
        ),
    ] = False,
    policy: Annotated[
        PolicyChoice | None,
        typer.Option(
            "--policy",
            "-p",
            help="Conflict policy: backup, adopt, or abort (default: from config).",
            case_sensitive=False,
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be done without making changes.",
        ),
    ] = False,
) -> None:
    """Provision this machine from the dotfiles source tree.

    On the first run you are asked to confirm before anything changes.
    Later runs restow: links whose files were removed from a package are
    cleaned up and new files are linked.

    Existing files in the way of a link are handled by the conflict policy:
      - backup: move them into a timestamped backup directory
      - adopt: move them into the package
      - abort: leave the package untouched and report it as failed

    Examples:
        dotctl apply                    # Full run
        dotctl apply --dry-run          # Preview conflicts and outcomes
        dotctl apply --skip-packages    # Links and settings only
        dotctl apply -t /tmp/home -y    # Link into another directory
    """
    if ctx.invoked_subcommand is not None:
        return

    config = load_config_or_exit()
    options = RunOptions(
        target=target,
        source=source,
        yes=yes,
        skip_packages=skip_packages,
        skip_links=skip_links,
        policy=policy.value if policy is not None else None,
        dry_run=dry_run,
    )
    orchestrator = _build_orchestrator(config, yes=yes, dry_run=dry_run)

    try:
        result = orchestrator.run(options)
    except DotctlError as e:
        raise exit_fatal(e) from e

    if result.status is RunStatus.CANCELLED:
        print_info("Aborted. Nothing was changed.")
        raise typer.Exit(code=EXIT_CANCELLED)

    _show_result(result)

    if dry_run:
        print_info("Dry run: no changes were made.")

    # Package and state failures are reported above and do not fail the run
    if not result.success:
        print_warning("Finished with failures; see the messages above.")
