"""Wrapper error types.

Every exception here is fatal to the wrapper: the entry point reports it and
exits with status 1 without relaying the wrapped command's result. A wrapped
command that runs and exits non-zero is not an error and never raises.
"""


class WrapperError(Exception):
    """Base class for failures of the wrapper itself."""

    pass


class PreferencesError(WrapperError):
    """Raised when the preferences document cannot be read or is malformed."""

    pass


class WorkingDirectoryError(WrapperError):
    """Raised when the invoking working directory cannot be determined."""

    pass


class LogDirectoryError(WrapperError):
    """Raised when the log directory cannot be created."""

    pass


class SpawnError(WrapperError):
    """Raised when the wrapped executable cannot be started.

    Attributes:
        executable: Path that was passed to the operating system.
    """

    def __init__(self, executable: str, reason: str):
        super().__init__(f"Cannot execute {executable}: {reason}")
        self.executable = executable


class LogWriteError(WrapperError):
    """Raised when the diagnostic record cannot be appended to the log file."""

    pass
