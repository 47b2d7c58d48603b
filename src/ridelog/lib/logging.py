"""Run logs for ridelog.

Each CLI run writes a DEBUG log to ``<data>/logs/ridelog-<timestamp>.log``.
The console only gets what the chosen verbosity allows, and nothing at all
when the output is machine-readable. HTTP connection records from urllib3
go to the file only.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

from ridelog.lib.paths import get_logs_dir

logger = logging.getLogger("ridelog")

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Console level by number of -v flags
VERBOSITY_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def console_level_for(verbose: int, quiet: bool = False) -> int:
    """Map -v/-q flags to a console log level."""
    if quiet:
        return logging.ERROR
    return VERBOSITY_LEVELS.get(verbose, logging.DEBUG)


def _drop_handlers(target: logging.Logger, handlers: list[logging.Handler]) -> None:
    for handler in handlers:
        target.removeHandler(handler)
        handler.close()


def setup_logging(
    data_dir: Path,
    verbose: int = 0,
    quiet: bool = False,
    console: bool = True,
) -> Path:
    """Route ridelog logs to the console and a per-run log file.

    Handlers installed by an earlier call are removed and closed first, so
    repeated runs in one process do not stack handlers.

    Args:
        data_dir: Data directory; the log goes to its ``logs/`` folder.
        verbose: Number of -v flags.
        quiet: Only show errors on the console.
        console: Install a console handler at all.

    Returns:
        Path of the log file for this run.
    """
    urllib3_logger = logging.getLogger("urllib3")
    _drop_handlers(urllib3_logger, [h for h in urllib3_logger.handlers if h in logger.handlers])
    _drop_handlers(logger, list(logger.handlers))
    logger.setLevel(logging.DEBUG)

    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setLevel(console_level_for(verbose, quiet))
        stream.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(stream)

    log_dir = get_logs_dir(data_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"ridelog-{datetime.now():%Y%m%dT%H%M%S}.log"

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    logger.addHandler(file_handler)

    urllib3_logger.setLevel(logging.DEBUG)
    urllib3_logger.addHandler(file_handler)

    logger.debug("Run log: %s", log_file)
    return log_file
