"""
Shared helpers for the flight tracker.
"""

import logging
import logging.handlers
import sys
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: Union[int, str] = logging.WARNING, log_file: Optional[str] = None,
                  max_log_size_mb: int = 10, backup_count: int = 3) -> None:
    """
    Set up logging configuration for the application.

    Log lines go to stderr so they do not interleave with the table on
    stdout, and to a rotating file when one is given.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_log_size_mb * 1024 * 1024,
            backupCount=backup_count
        ))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
