"""Logging setup for the CLI.

One pipe-separated format for console and file. Recoverable audit problems
surface as WARNING records, phase boundaries as INFO banners.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
BANNER_WIDTH = 60

# HTTP stack logs every request at DEBUG
NOISY_LOGGERS = ('urllib3', 'requests')


def setup_logging(log_file: Optional[Path] = None, verbose: bool = False) -> logging.Logger:
    """Configure the root logger for an audit run.

    Replaces any handlers already on the root logger, so calling it twice
    doesn't double every line. verbose switches console and file to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Module logger. Pass __name__ so records carry the auditor module path."""
    return logging.getLogger(name)


def log_banner(logger: logging.Logger, title: str) -> None:
    """Log title between two horizontal rules, e.g. at the start of a run."""
    logger.info("=" * BANNER_WIDTH)
    logger.info(title)
    logger.info("=" * BANNER_WIDTH)
