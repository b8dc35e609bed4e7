"""Init command implementation.

Creates a config.toml with the default settings, ready to edit.
"""

from pathlib import Path
from typing import Annotated

import typer

from dotctl.cli.types import EXIT_FAILED
from dotctl.core.config import DotctlConfig, LinksConfig, save_config
from dotctl.core.errors import ConfigError
from dotctl.core.paths import get_config_path
from dotctl.utils.formatting import (
    console,
    print_error,
    print_heading,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Create a default configuration file.",
    invoke_without_command=True,
)


def _show_config_summary(config: DotctlConfig, output_path: Path) -> None:
    """Display a summary of the configuration to be written.

    Args:
        config: The configuration to summarize.
        output_path: Path where the configuration will be saved.
    """
    links = config.links
    print_heading("Configuration Summary")
    console.print(f"  Source: [info]{links.source_dir}[/info]")
    console.print(f"  Packages: [muted]{links.packages_dir}[/muted]")
    console.print(f"  Target: [muted]{links.target_dir or '~'}[/muted]")
    console.print(f"  Policy: {links.policy}")
    console.print(f"  Bundle: [muted]{config.manifest_path}[/muted]")
    console.print(f"  Output: [muted]{output_path}[/muted]")


@app.callback(invoke_without_command=True)
def init_config(
    ctx: typer.Context,
    source: Annotated[
        Path | None,
        typer.Option(
            "--source",
            "-s",
            help="Dotfiles source tree to record in the config.",
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output path for the config file.",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing config file.",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be created without writing files.",
        ),
    ] = False,
) -> None:
    """Write a default configuration file.

    Examples:
        dotctl init                       # Create config in default location
        dotctl init --source ~/dotfiles   # Record a different source tree
        dotctl init --force               # Overwrite existing config
        dotctl init --dry-run             # Preview without writing
    """
    if ctx.invoked_subcommand is not None:
        return

    output_path = output or get_config_path()

    if output_path.exists():
        if dry_run:
            print_warning(f"Config already exists: {output_path}")
            print_info("Would be overwritten with --force.")
        elif not force:
            print_error(f"Config already exists: {output_path}")
            print_info("Use --force to overwrite or specify a different path with --output.")
            raise typer.Exit(code=EXIT_FAILED)
        else:
            print_warning(f"Overwriting existing config: {output_path}")

    config = DotctlConfig()
    if source is not None:
        config = DotctlConfig(links=LinksConfig(source_dir=source.expanduser()))

    _show_config_summary(config, output_path)

    if dry_run:
        print_info("Dry run: no files were written.")
        return

    try:
        saved_path = save_config(config, output_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=EXIT_FAILED) from e
    print_success(f"Config created: {saved_path}")
