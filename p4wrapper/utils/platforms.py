import os
import sys
from typing import IO
from p4wrapper.utils.constants import LOG_DIR_NIX, LOG_DIR_WIN, REAL_P4_NIX, REAL_P4_WIN, REAL_SUFFIX

class Platform:
    """Host-specific behavior consumed by the wrapper.

    Holds the default install path of the real client, the default log
    directory, the native line ending, how the debug log is locked while a
    record is appended, and the shim written by ``p4-wrapper-cli install``.
    """

    name = "generic"
    default_executable = REAL_P4_NIX
    default_log_directory = LOG_DIR_NIX
    line_ending = "\n"

    def convert_line_endings(self, text: str) -> str:
        """Rewrite every newline in text to the native line ending."""
        if self.line_ending == "\n":
            return text
        return text.replace("\n", self.line_ending)

    def lock_file(self, f: IO) -> None:
        pass

    def unlock_file(self, f: IO) -> None:
        pass

    def backup_path(self, target: str) -> str:
        """Where install moves the real client found at target."""
        return target + REAL_SUFFIX

    def shim_path(self, target: str) -> str:
        """Where install writes the shim that stands in for target."""
        return target

    def shim_script(self, interpreter: str) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class PosixPlatform(Platform):
    name = "posix"
    default_executable = REAL_P4_NIX
    default_log_directory = LOG_DIR_NIX
    line_ending = "\n"

    def lock_file(self, f: IO) -> None:
        """Take an exclusive advisory lock so concurrent runs never interleave records."""
        import fcntl
        fcntl.flock(f.fileno(), fcntl.LOCK_EX)

    def unlock_file(self, f: IO) -> None:
        import fcntl
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def shim_script(self, interpreter: str) -> str:
        return f"""#!/bin/sh
# p4-wrapper shim for p4
exec "{interpreter}" -m p4wrapper.main "$@"
"""


class WindowsPlatform(Platform):
    name = "windows"
    default_executable = REAL_P4_WIN
    default_log_directory = LOG_DIR_WIN
    line_ending = "\r\n"

    def backup_path(self, target: str) -> str:
        # p4.exe -> p4.real.exe, still runnable by CreateProcess
        root, ext = os.path.splitext(target)
        return root + REAL_SUFFIX + ext

    def shim_path(self, target: str) -> str:
        # cmd.exe finds p4.bat through PATHEXT once p4.exe is moved aside
        root, _ = os.path.splitext(target)
        return root + ".bat"

    def shim_script(self, interpreter: str) -> str:
        return f"""@echo off\r
rem p4-wrapper shim for p4\r
"{interpreter}" -m p4wrapper.main %*\r
exit /b %ERRORLEVEL%\r
"""


def current_platform() -> Platform:
    """Return the Platform implementation for the running interpreter."""
    if sys.platform == "win32" or os.name == "nt":
        return WindowsPlatform()
    return PosixPlatform()
