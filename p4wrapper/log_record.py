"""Diagnostic record formatting and appending.

``format_record`` is a pure function of its inputs so a record can be built
and checked without touching the process environment, the working directory
or the filesystem. ``append_record`` is the only place the debug log is
written.
"""

import os
from typing import List
from p4wrapper.errors import LogDirectoryError, LogWriteError
from p4wrapper.process_runner import ExecutionResult
from p4wrapper.utils.constants import DEBUG_LOG_NAME, RECORD_TEMPLATE
from p4wrapper.utils.logging import logger
from p4wrapper.utils.platforms import Platform

# Command output is arbitrary bytes; this keeps the log byte-exact.
OUTPUT_ENCODING = 'utf-8'
OUTPUT_ERRORS = 'surrogateescape'


def format_record(args: List[str], environment: List[str], cwd: str,
                  result: ExecutionResult, platform: Platform) -> str:
    """Build the diagnostic record for one invocation.

    Args:
        args: Caller arguments, without any verbosity prefix
        environment: P4 environment snapshot as NAME=VALUE entries
        cwd: Directory the wrapper was invoked from
        result: Captured execution result
        platform: Supplies the native line ending

    Returns:
        str: Record text. Newlines of the template and the environment block
        use the platform line ending; command output is embedded unchanged.
    """
    template = platform.convert_line_endings(RECORD_TEMPLATE)
    return template.format(
        time=result.start_time.isoformat(timespec='seconds'),
        args=" ".join(args),
        cwd=cwd,
        environment=platform.convert_line_endings("\n".join(environment)),
        output=result.output.decode(OUTPUT_ENCODING, errors=OUTPUT_ERRORS),
        exit_code=result.exit_code,
        duration=result.duration_ms
    )


def ensure_log_directory(log_directory: str) -> str:
    """Create the log directory if needed and return the debug log path.

    Raises:
        LogDirectoryError: If the directory cannot be created
    """
    try:
        os.makedirs(log_directory, mode=0o755, exist_ok=True)
    except OSError as e:
        logger.error("Failed to create log directory %s: %s", log_directory, e)
        raise LogDirectoryError(f"Cannot create log directory {log_directory}: {e}") from e
    return os.path.join(log_directory, DEBUG_LOG_NAME)


def append_record(log_path: str, record: str, platform: Platform) -> None:
    """Append one record to the debug log in a single write.

    The file is held under the platform's exclusive lock for the duration of
    the write, and is always closed.

    Raises:
        LogWriteError: If the log cannot be opened or written
    """
    try:
        with open(log_path, 'a', encoding=OUTPUT_ENCODING, errors=OUTPUT_ERRORS, newline='') as f:
            platform.lock_file(f)
            try:
                f.write(record)
                f.flush()
            finally:
                platform.unlock_file(f)
    except OSError as e:
        logger.error("Failed to write debug log %s: %s", log_path, e)
        raise LogWriteError(f"Cannot write debug log {log_path}: {e}") from e
    logger.debug("Appended %d characters to %s", len(record), log_path)
