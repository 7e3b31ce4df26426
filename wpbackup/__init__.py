"""
wpbackup - WordPress backup orchestration.

Dumps the database, archives wp-content and rotates old backups.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

__version__ = '1.0.0'

CONSOLE_FORMAT = '[%(asctime)s] %(levelname)s: %(message)s'
FILE_FORMAT = '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for the wpbackup package.

    Handlers are attached to the package logger (not the root logger) and
    replaced on every call, so repeated configuration does not duplicate output.

    Args:
        verbose: Log debug messages when True
        log_file: Optional path of a rotating log file

    Returns:
        The configured package logger
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    package_logger = logging.getLogger(__name__)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_formatter = logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT)

    # Console handlers: progress on stdout, warnings and errors on stderr
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(log_level)
    stdout_handler.addFilter(lambda record: record.levelno < logging.WARNING)
    stdout_handler.setFormatter(console_formatter)
    package_logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(console_formatter)
    package_logger.addHandler(stderr_handler)

    # File handler
    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10485760,  # 10MB
            backupCount=10
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        package_logger.addHandler(file_handler)

    package_logger.setLevel(log_level)

    package_logger.debug(f"Logging configured (level: {logging.getLevelName(log_level)})")
    return package_logger
