import os
import sys
from typing import BinaryIO, List, Mapping, Optional, Union
from p4wrapper.environment import p4_environment
from p4wrapper.errors import WorkingDirectoryError
from p4wrapper.log_record import append_record, ensure_log_directory, format_record
from p4wrapper.preferences import Preferences, PreferencesLoader
from p4wrapper.process_runner import ExecutionResult, ProcessRunner
from p4wrapper.utils.constants import VERBOSE_FLAGS
from p4wrapper.utils.logging import logger
from p4wrapper.utils.platforms import Platform, current_platform

class CommandInterceptor:
    """Stands in for the p4 client: runs it, logs the run, relays the result."""

    def __init__(self, prefs: Optional[Preferences] = None, platform: Optional[Platform] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 stdin: Union[BinaryIO, int, None] = None, stdout: Optional[BinaryIO] = None):
        self.platform = platform or current_platform()
        self.prefs = prefs or PreferencesLoader(platform=self.platform).load()
        self.environ = environ if environ is not None else os.environ
        self.stdin = stdin if stdin is not None else _stdin_fd()
        self.stdout = stdout if stdout is not None else sys.stdout.buffer
        self.runner = ProcessRunner(self.prefs.executable_path, env=self.environ)
        logger.info("CommandInterceptor initialized with real p4 at: %s", self.prefs.executable_path)

    def resolve_args(self, args: List[str]) -> List[str]:
        """Return the argument vector passed to the real client."""
        if self.prefs.verbose:
            return VERBOSE_FLAGS + list(args)
        return list(args)

    def _get_cwd(self) -> str:
        try:
            return os.getcwd()
        except OSError as e:
            logger.error("Cannot determine working directory: %s", e)
            raise WorkingDirectoryError(f"Cannot determine working directory: {e}") from e

    def truncate_output(self, output: bytes) -> bytes:
        """Keep at most max_output_lines lines from the start of output."""
        limit = self.prefs.max_output_lines
        if limit <= 0:
            return output
        lines = output.split(b"\n")
        if len(lines) > limit:
            logger.debug("Truncating output from %d to %d lines", len(lines), limit)
        return b"\n".join(lines[:limit])

    def relay_output(self, output: bytes) -> None:
        self.stdout.write(self.truncate_output(output) + b"\n")
        self.stdout.flush()

    def log_execution(self, args: List[str], cwd: str, result: ExecutionResult, log_path: str) -> None:
        """Format the diagnostic record for this run and append it to the log."""
        record = format_record(args, p4_environment(self.environ), cwd, result, self.platform)
        append_record(log_path, record, self.platform)

    def intercept_command(self, args: List[str]) -> int:
        """Intercept one p4 invocation.

        Args:
            args: Full argv of the wrapper, program name first

        Returns:
            int: Exit code of the wrapped client

        Raises:
            WrapperError: On any failure of the wrapper itself, before the
                result is relayed
        """
        logger.info("Raw command received: %s", " ".join(args))
        invocation = list(args[1:])

        cwd = self._get_cwd()
        log_path = ensure_log_directory(self.prefs.log_directory)

        result = self.runner.run(self.resolve_args(invocation), stdin=self.stdin)
        logger.info("p4 exited with code %d in %d ms", result.exit_code, result.duration_ms)

        self.log_execution(invocation, cwd, result, log_path)
        self.relay_output(result.output)
        return result.exit_code


def _stdin_fd() -> Optional[int]:
    """Descriptor of the wrapper's standard input, None if it has none."""
    if sys.stdin is None:
        return None
    try:
        return sys.stdin.fileno()
    except (OSError, ValueError):
        return None
