"""Exception hierarchy for dotctl.

Every fatal error carries a human-readable remediation hint that the CLI
prints alongside the error message.
"""


class DotctlError(Exception):
    """Base exception for fatal dotctl errors.

    Attributes:
        hint: Remediation advice shown to the user, or None.
    """

    default_hint: str | None = None

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint if hint is not None else self.default_hint


class ConfigError(DotctlError):
    """Raised when the configuration file cannot be read or validated."""

    default_hint = "Fix the file or run 'dotctl init --force' to write a fresh one."


class SourceTreeMissingError(DotctlError):
    """Raised when the dotfiles source tree does not exist."""

    default_hint = "Clone your dotfiles repository there, or pass --source."


class TargetRootError(DotctlError):
    """Raised when the link target root is missing or not writable."""

    default_hint = "Check the directory permissions, or pass --target."


class UnsupportedPlatformError(DotctlError):
    """Raised when the OS or CPU architecture is not supported."""

    default_hint = "dotctl supports macOS and Linux on arm64 and x86_64."


class StateError(DotctlError):
    """Raised when the installation record cannot be written."""

    default_hint = "Check that the state directory is writable; the next run will ask again."
