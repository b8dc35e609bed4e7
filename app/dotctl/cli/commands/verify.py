"""Verify command implementation.

Runs the configuration audit on its own, without changing anything.
"""

from pathlib import Path
from typing import Annotated

import typer

from dotctl.cli.display import create_verification_table
from dotctl.cli.types import load_config_or_exit
from dotctl.core.paths import get_log_path
from dotctl.core.state import StateStore
from dotctl.core.verifier import ConfigVerifier
from dotctl.installers.brew import BrewInstaller
from dotctl.links.scanner import discover_source_tree
from dotctl.utils.formatting import console, print_success, print_warning

app = typer.Typer(
    help="Check that links and settings are in place.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def verify(
    ctx: typer.Context,
    target: Annotated[
        Path | None,
        typer.Option(
            "--target",
            "-t",
            help="Directory holding the links (default: home directory).",
        ),
    ] = None,
) -> None:
    """Audit links, shell settings, the package bundle and dotctl's own files.

    Failed checks are warnings and never change the exit status. Only an
    invalid configuration file is fatal.

    Examples:
        dotctl verify
        dotctl verify --target /tmp/home
    """
    if ctx.invoked_subcommand is not None:
        return

    config = load_config_or_exit()
    target_root = target.expanduser() if target is not None else config.links.target_root

    links = config.links
    packages_dir = links.packages_dir
    if packages_dir.is_dir():
        packages = discover_source_tree(
            links.source_dir.expanduser(),
            links.packages_subdir,
            links.packages,
            links.ignore,
            links.bin_dir,
        )
    else:
        print_warning(f"Dotfiles source tree not found: {packages_dir}")
        packages = []

    if not target_root.is_dir():
        print_warning(f"Target directory not found: {target_root}")
        return

    verifier = ConfigVerifier(
        installer=BrewInstaller(),
        state_path=StateStore().state_path,
        log_path=get_log_path(),
    )
    manifest = config.manifest_path
    report = verifier.verify(
        packages,
        target_root,
        settings=config.settings,
        expected_links=config.verify.expected_links,
        manifest=manifest if manifest.is_file() else None,
    )

    if report.checks:
        console.print(create_verification_table(report))

    if report.ok:
        print_success(f"All {report.passed} check(s) passed.")
    else:
        print_warning(f"{report.warnings} of {len(report.checks)} check(s) did not pass.")
