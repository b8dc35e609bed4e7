"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from typing import Annotated

import typer

from dotctl import __version__
from dotctl.cli.commands import apply, init, status, verify
from dotctl.core.log import configure_logging

app = typer.Typer(
    name="dotctl",
    help="Provision a machine from a dotfiles repository.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"dotctl version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show progress log messages.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only show errors from the log.",
        ),
    ] = False,
) -> None:
    """dotctl - Provision a machine from a dotfiles repository.

    Installs the package bundle, links dotfiles packages into your home
    directory and keeps them linked on every later run.
    """
    log_path = configure_logging(verbose=verbose, quiet=quiet)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["log_path"] = log_path


# Register commands
app.add_typer(apply.app, name="apply")
app.add_typer(status.app, name="status")
app.add_typer(verify.app, name="verify")
app.add_typer(init.app, name="init")


if __name__ == "__main__":
    app()
