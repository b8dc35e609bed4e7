"""State management for the installation record.

This module provides the StateStore class for persisting and querying the
installation record that gates first-run confirmation and selects the
reconciliation mode.
"""

import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from tempfile import NamedTemporaryFile

from pydantic import ValidationError

from dotctl import __version__
from dotctl.core.errors import StateError
from dotctl.core.paths import get_state_path
from dotctl.models.record import InstallationRecord

logger = logging.getLogger(__name__)


class StateStore:
    """Manages the installation record in a JSON file.

    Storage location: ~/.local/state/dotctl/state.json

    An absent, unreadable or malformed file is treated as "not installed".
    A corrupted state file must never suppress the first-run confirmation.

    Attributes:
        state_path: Path to the record file.
    """

    def __init__(self, state_path: Path | None = None) -> None:
        """Initialize StateStore.

        Args:
            state_path: Optional override for the record file.
                        Default: ~/.local/state/dotctl/state.json
        """
        self._state_path = state_path if state_path is not None else get_state_path()

    @property
    def state_path(self) -> Path:
        """Path to the installation record file."""
        return self._state_path

    def load(self) -> InstallationRecord | None:
        """Read the installation record.

        Returns:
            The stored InstallationRecord, or None if the file is absent
            or cannot be parsed.
        """
        try:
            content = self._state_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read state file %s: %s", self._state_path, e)
            return None

        try:
            return InstallationRecord.model_validate_json(content)
        except ValidationError as e:
            logger.warning(
                "Ignoring malformed state file %s: %d error(s)",
                self._state_path,
                e.error_count(),
            )
            return None

    def is_first_run(self) -> bool:
        """Check whether provisioning has never completed on this host.

        Returns:
            True if no valid record exists or its installed flag is False.
        """
        record = self.load()
        return record is None or not record.installed

    def has_record_file(self) -> bool:
        """Check whether a record file exists, valid or not.

        A file that can no longer be parsed still shows that an earlier
        run laid down links, so it selects restow even though it
        re-triggers the first-run confirmation.
        """
        return self._state_path.exists()

    def save(self, record: InstallationRecord) -> InstallationRecord:
        """Persist the installation record.

        The installed_at timestamp of an existing record is preserved;
        last_updated and tool_version are always refreshed. The file is
        written to a temporary path in the same directory and renamed into
        place, so readers never observe a half-written record.

        Args:
            record: Record to store.

        Returns:
            The record exactly as written.

        Raises:
            StateError: If the file cannot be written.
        """
        existing = self.load()
        now = datetime.now(UTC)
        to_write = record.model_copy(
            update={
                "installed_at": existing.installed_at if existing else now,
                "last_updated": now,
                "tool_version": __version__,
            }
        )

        tmp_path: Path | None = None
        try:
            self._state_path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._state_path.parent,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                f.write(to_write.model_dump_json(indent=2))
                f.write("\n")
            os.replace(str(tmp_path), str(self._state_path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            msg = f"Failed to write state file {self._state_path}: {e}"
            raise StateError(msg) from e

        logger.info(
            "Saved installation record (installed_at=%s, last_updated=%s)",
            to_write.installed_at.isoformat(),
            to_write.last_updated.isoformat(),
        )
        return to_write
