"""Shared Rich display functions for run results.

Provides table builders and summary printers for reconciliation reports,
verification reports and installation records across CLI commands
(apply, verify, status).
"""

from rich.table import Table

from dotctl.core.verifier import VerificationReport
from dotctl.links.models import PackageOutcome, PackageResult, ReconciliationReport
from dotctl.models.record import InstallationRecord
from dotctl.utils.formatting import console, print_success

# Rich style per package outcome
_OUTCOME_STYLES: dict[PackageOutcome, str] = {
    PackageOutcome.APPLIED: "linked",
    PackageOutcome.APPLIED_WITH_BACKUPS: "backup",
    PackageOutcome.SKIPPED_CURRENT: "current",
    PackageOutcome.FAILED_CONFLICT: "conflict",
    PackageOutcome.FAILED_MISSING: "error",
}


def _describe(result: PackageResult) -> str:
    parts: list[str] = []
    if result.linked:
        parts.append(f"{len(result.linked)} linked")
    if result.backed_up:
        parts.append(f"{len(result.backed_up)} backed up")
    if result.adopted:
        parts.append(f"{len(result.adopted)} adopted")
    if result.obsolete_removed:
        parts.append(f"{len(result.obsolete_removed)} obsolete removed")
    if result.conflicts and result.outcome.failed:
        parts.append(f"{len(result.conflicts)} conflict(s)")
    if result.error:
        parts.append(result.error)
    return ", ".join(parts)


def create_report_table(report: ReconciliationReport) -> Table:
    """Create a Rich table displaying one row per package.

    Args:
        report: Reconciliation report to display.

    Returns:
        Rich Table configured for package result display.
    """
    title = "Links (Dry Run)" if report.dry_run else "Links"

    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Package", style="package.name", no_wrap=True)
    table.add_column("Outcome", no_wrap=True)
    table.add_column("Details")

    for result in report.results:
        style = _OUTCOME_STYLES[result.outcome]
        table.add_row(
            result.package,
            f"[{style}]{result.outcome.value}[/{style}]",
            f"[muted]{_describe(result)}[/muted]",
        )

    return table


def print_conflicts(report: ReconciliationReport) -> None:
    """Print every unresolved conflict of failed packages.

    Args:
        report: Reconciliation report.
    """
    for result in report.failed:
        for path in result.conflicts:
            console.print(f"  [conflict]conflict[/conflict] {result.package}: {path}")


def print_report_summary(report: ReconciliationReport) -> None:
    """Print a summary line for a reconciliation report.

    Args:
        report: Reconciliation report.
    """
    if report.broken_links_removed:
        console.print(f"[muted]Removed {report.broken_links_removed} broken link(s)[/muted]")
    if report.obsolete_links_removed:
        console.print(f"[muted]Removed {report.obsolete_links_removed} obsolete link(s)[/muted]")
    if report.backup_dir is not None:
        console.print(f"Backups saved to [backup]{report.backup_dir}[/backup]")

    failed = len(report.failed)
    succeeded = len(report.results) - failed
    if failed == 0:
        print_success(f"All {succeeded} package(s) reconciled.")
    else:
        console.print(
            f"\n[success]{succeeded} succeeded[/success], [error]{failed} failed[/error]"
        )


def create_verification_table(report: VerificationReport) -> Table:
    """Create a Rich table displaying verification checks.

    Args:
        report: Verification report to display.

    Returns:
        Rich Table configured for check display.
    """
    table = Table(
        title="Verification",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=6, justify="center")
    table.add_column("Check", no_wrap=True)
    table.add_column("Detail")

    for check in report.checks:
        status = "[success]OK[/success]" if check.passed else "[warning]WARN[/warning]"
        table.add_row(status, check.name, f"[muted]{check.detail}[/muted]")

    return table


def print_record(record: InstallationRecord) -> None:
    """Print the fields of an installation record.

    Args:
        record: Installation record to display.
    """
    console.print(f"  Installed:     [success]{record.installed}[/success]")
    console.print(f"  Installed at:  {record.installed_at:%Y-%m-%d %H:%M:%S %Z}")
    console.print(f"  Last updated:  {record.last_updated:%Y-%m-%d %H:%M:%S %Z}")
    console.print(f"  Version:       {record.tool_version}")
    console.print(f"  Source:        [info]{record.install_path}[/info]")
    console.print(f"  Platform:      {record.platform}")
    if record.hostname:
        console.print(f"  Host:          {record.hostname}")
