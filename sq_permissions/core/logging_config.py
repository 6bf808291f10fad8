"""
Logging configuration module.

Design principles:
- Standard library only
- Console output on stderr, kept quiet by default so it does not mix with
  the progress text printed on stdout
- Optional CSV file output (daily rotation, keep 30 days history)
"""

import csv
import io
import logging
import os
import sys
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

# Console format: human-readable
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# CSV fields (7 columns)
CSV_FIELDS = ['timestamp', 'level', 'module', 'message', 'project', 'batch', 'error']


class CsvFormatter(logging.Formatter):
    """
    CSV format logger - auto-handles quotes and commas.

    Usage:
        logger.warning("message", extra={'project': 'my:key', 'error': '404'})
    """

    def format(self, record):
        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)

        row = [
            self.formatTime(record, self.datefmt),   # timestamp
            record.levelname,                         # level
            record.name,                              # module
            record.getMessage(),                      # message
            getattr(record, 'project', ''),           # project
            getattr(record, 'batch', ''),             # batch
            getattr(record, 'error', ''),             # error
        ]
        writer.writerow(row)
        return output.getvalue().strip()


class ConsoleHandler(logging.StreamHandler):
    """
    Stderr handler installed by setup_logging.

    Records logged with extra={'console': False} only go to the CSV file.
    """

    def filter(self, record):
        if not getattr(record, 'console', True):
            return False
        return super().filter(record)


class CsvRotatingFileHandler(TimedRotatingFileHandler):
    """
    Timed rotating file handler with CSV header support.

    Writes CSV header when creating new log file.
    """

    def _open(self):
        is_new = not os.path.exists(self.baseFilename) or \
                 os.path.getsize(self.baseFilename) == 0

        stream = super()._open()

        if is_new:
            stream.write(','.join(CSV_FIELDS) + '\n')
            stream.flush()

        return stream


def setup_logging(level: int = logging.WARNING, log_dir: Path | None = None) -> None:
    """
    Configure logging system.

    Idempotent: repeated calls won't create duplicate handlers.

    Args:
        level: Console log level
        log_dir: Directory for the CSV log file; no file output when None
    """
    root_logger = logging.getLogger()

    # Idempotent check: skip if already configured
    if any(isinstance(h, ConsoleHandler) for h in root_logger.handlers):
        return

    # File output keeps INFO even when the console only shows warnings
    root_logger.setLevel(min(level, logging.INFO))

    # Handler 1: Console output on stderr
    console_handler = ConsoleHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    # Handler 2: CSV file output
    # Filename includes date: sq_permissions_2025_12_19.csv
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y_%m_%d")
        csv_handler = CsvRotatingFileHandler(
            filename=log_dir / f"sq_permissions_{today}.csv",
            when="midnight",
            interval=1,
            backupCount=30,
            encoding="utf-8"
        )
        csv_handler.setFormatter(CsvFormatter(datefmt=DATE_FORMAT))
        root_logger.addHandler(csv_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
