import logging
import os
import sys
from typing import Optional
from p4wrapper.utils.constants import DEFAULT_LOG_LEVEL, ENV_LOG_FILE, ENV_LOG_LEVEL

def setup_logger(name: str, level: Optional[int] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Set up a logger with consistent formatting and configuration.

    Standard output belongs to the wrapped command, so the console handler
    writes to stderr.

    Args:
        name: Name of the logger
        level: Optional logging level. Read from P4_WRAPPER_LOG_LEVEL if not specified.
        log_file: Optional path to log file. Read from P4_WRAPPER_LOG_FILE if not specified.

    Returns:
        logging.Logger: Configured logger instance
    """
    if log_file is None:
        log_file = os.environ.get(ENV_LOG_FILE)

    logger = logging.getLogger(name)

    if level is None:
        env_level = os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()
        level = getattr(logging, env_level, None)
        if not isinstance(level, int):
            level = logging.INFO

    logger.setLevel(level)

    # Clear existing handlers
    logger.handlers = []

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s - (%(filename)s)',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, mode=0o755, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger

# Create default logger for the application
logger = setup_logger('p4wrapper')
