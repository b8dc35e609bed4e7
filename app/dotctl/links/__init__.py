"""Symlink farm reconciliation.

Scans dotfiles packages and links them into the target root, detecting
and resolving conflicts with existing files.
"""

from dotctl.links.models import (
    ConflictPolicy,
    Package,
    PackageOutcome,
    PackageResult,
    ReconcileMode,
    ReconciliationReport,
)
from dotctl.links.reconciler import LinkReconciler
from dotctl.links.scanner import (
    discover_packages,
    discover_source_tree,
    is_ignored,
    scan_package,
    scan_subdirectory,
)

__all__ = [
    "ConflictPolicy",
    "LinkReconciler",
    "Package",
    "PackageOutcome",
    "PackageResult",
    "ReconcileMode",
    "ReconciliationReport",
    "discover_packages",
    "discover_source_tree",
    "is_ignored",
    "scan_package",
    "scan_subdirectory",
]
