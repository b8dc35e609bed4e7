"""Status command for viewing the installation record.

This module provides the `dotctl status` command, which shows whether
this machine has been provisioned and when.
"""

from typing import Annotated

import typer

from dotctl.cli.display import print_record
from dotctl.core.state import StateStore
from dotctl.utils.formatting import print_detail, print_heading, print_info

app = typer.Typer(
    name="status",
    help="Show the installation record.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def status(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show whether this machine has been provisioned.

    A missing or unreadable record means the next `dotctl apply` is
    treated as a first run and asks for confirmation.

    Examples:
        dotctl status           # Human-readable summary
        dotctl status --json    # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    store = StateStore()
    record = store.load()

    if json_output:
        typer.echo(record.model_dump_json(indent=2) if record is not None else "null")
        return

    if record is None or not record.installed:
        print_info("Not installed. The next 'dotctl apply' is a first run.")
        print_detail("Record", store.state_path)
        return

    print_heading("Installation")
    print_record(record)
    print_detail("Record", store.state_path)
