"""Installation record model.

The installation record is the single persisted fact that distinguishes a
first run from an update run. It is written only by the orchestrator.
"""

import socket
from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from dotctl import __version__


class InstallationRecord(BaseModel):
    """Provisioning history for this host.

    Attributes:
        installed: Whether provisioning has completed at least once.
        installed_at: When the first successful run finished. Never changes once set.
        last_updated: When the most recent run finished.
        tool_version: dotctl version that wrote the record.
        install_path: Dotfiles source tree used for the run.
        platform: Platform identifier (e.g. "macos-arm64").
        hostname: Host the record belongs to.
    """

    model_config = ConfigDict(extra="ignore")

    installed: Annotated[bool, Field(description="Provisioning completed")] = True
    installed_at: Annotated[datetime, Field(description="First successful run")]
    last_updated: Annotated[datetime, Field(description="Most recent run")]
    tool_version: Annotated[str, Field(description="dotctl version")] = __version__
    install_path: Annotated[str, Field(description="Dotfiles source tree")]
    platform: Annotated[str, Field(description="Platform identifier")] = "unknown"
    hostname: Annotated[str, Field(description="Host name")] = ""


def create_record(install_path: str, platform: str) -> InstallationRecord:
    """Factory function to create a new InstallationRecord.

    Both timestamps are set to now; StateStore.save() carries over the
    original installed_at when a record already exists.

    Args:
        install_path: Dotfiles source tree used for the run.
        platform: Platform identifier.

    Returns:
        New InstallationRecord with installed=True.
    """
    now = datetime.now(UTC)
    return InstallationRecord(
        installed=True,
        installed_at=now,
        last_updated=now,
        tool_version=__version__,
        install_path=install_path,
        platform=platform,
        hostname=socket.gethostname(),
    )
