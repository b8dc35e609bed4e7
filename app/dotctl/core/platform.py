"""Platform detection.

Maps the running OS and CPU architecture onto the short identifiers used
in the installation record (e.g. "macos-arm64", "linux-x64").
"""

import platform as _platform
from dataclasses import dataclass

from dotctl.core.errors import UnsupportedPlatformError

_OS_NAMES: dict[str, str] = {
    "darwin": "macos",
    "linux": "linux",
}

_ARCH_NAMES: dict[str, str] = {
    "arm64": "arm64",
    "aarch64": "arm64",
    "x86_64": "x64",
    "amd64": "x64",
}


@dataclass(frozen=True, slots=True)
class Platform:
    """Detected operating system and architecture.

    Attributes:
        os: Normalized OS name ("macos" or "linux").
        arch: Normalized architecture ("arm64" or "x64").
    """

    os: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os}-{self.arch}"


def get_platform(system: str | None = None, machine: str | None = None) -> Platform:
    """Detect the current platform.

    Args:
        system: Override for platform.system() (used for testing).
        machine: Override for platform.machine() (used for testing).

    Returns:
        Platform with normalized OS and architecture names.

    Raises:
        UnsupportedPlatformError: If the OS or architecture is unknown.
    """
    raw_system = system if system is not None else _platform.system()
    raw_machine = machine if machine is not None else _platform.machine()

    os_name = _OS_NAMES.get(raw_system.lower())
    if os_name is None:
        msg = f"Unsupported operating system: {raw_system}"
        raise UnsupportedPlatformError(msg)

    arch = _ARCH_NAMES.get(raw_machine.lower())
    if arch is None:
        msg = f"Unsupported architecture: {raw_machine}"
        raise UnsupportedPlatformError(msg)

    return Platform(os=os_name, arch=arch)
