"""Data models for dotctl.

This module exports the persisted data structures used throughout the application.
"""

from dotctl.models.record import InstallationRecord, create_record

__all__ = [
    "InstallationRecord",
    "create_record",
]
