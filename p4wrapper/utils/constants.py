"""Constants used across the p4-wrapper codebase."""

import os

# Preferences
PREFS_FILE_NAME = ".p4-wrapper.json"
DEFAULT_PREFS_PATH = os.path.join(os.path.expanduser("~"), PREFS_FILE_NAME)
LOCAL_PREFS_NAME = "p4-wrapper.json"

# Environment variables
ENV_PREFS_PATH = "P4_WRAPPER_PREFS"
ENV_LOG_LEVEL = "P4_WRAPPER_LOG_LEVEL"
ENV_LOG_FILE = "P4_WRAPPER_LOG_FILE"

# Wrapped client
REAL_P4_WIN = "C:\\Program Files\\Perforce\\p4.exe"
REAL_P4_NIX = "/usr/local/bin/p4"
LOG_DIR_WIN = "C:\\tmp"
LOG_DIR_NIX = "/tmp"
VERBOSE_FLAGS = ["-v", "4"]
P4_ENV_PATTERN = r"^P4[^=]+="

# Debug log
DEBUG_LOG_NAME = "p4-debug.log"
UNLIMITED_LINES = -1

RECORD_TEMPLATE = """
----------
Time: {time}
Executing: p4 {args}

CWD: {cwd}

P4 Environment:

{environment}

Full Output:

{output}

Exit Status: {exit_code}

Exec Time: {duration} ms
"""

# Installed client backups
REAL_SUFFIX = ".real"

# Logging
DEFAULT_LOG_LEVEL = "WARNING"
