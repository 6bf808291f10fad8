import logging

import pytest

from sq_permissions.core.logging_config import (
    CSV_FIELDS,
    ConsoleHandler,
    CsvRotatingFileHandler,
    setup_logging,
)


@pytest.fixture
def clean_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = [h for h in root.handlers if not isinstance(h, ConsoleHandler)]
    yield root
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def test_setup_logging_writes_csv_with_header(clean_root_logger, tmp_path):
    setup_logging(logging.WARNING, tmp_path)
    setup_logging(logging.WARNING, tmp_path)

    handlers = [h for h in clean_root_logger.handlers if isinstance(h, CsvRotatingFileHandler)]
    assert len(handlers) == 1

    logging.getLogger("sq_permissions.test").info(
        "visibility failed, retry later", extra={"project": "my:key", "error": 404}
    )
    handlers[0].flush()

    log_file = next(tmp_path.glob("sq_permissions_*.csv"))
    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert lines[0] == ",".join(CSV_FIELDS)
    assert lines[1].endswith('INFO,sq_permissions.test,"visibility failed, retry later",my:key,,404')


def test_console_only_without_log_dir(clean_root_logger):
    setup_logging(logging.INFO)

    assert not any(isinstance(h, CsvRotatingFileHandler) for h in clean_root_logger.handlers)
    assert sum(isinstance(h, ConsoleHandler) for h in clean_root_logger.handlers) == 1
    assert logging.getLogger("httpx").level == logging.WARNING


def test_console_skips_records_marked_file_only(clean_root_logger):
    setup_logging(logging.INFO)
    [console] = [h for h in clean_root_logger.handlers if isinstance(h, ConsoleHandler)]

    file_only = logging.makeLogRecord({"msg": "already printed", "levelno": logging.INFO, "console": False})
    regular = logging.makeLogRecord({"msg": "phase done", "levelno": logging.INFO})

    assert not console.filter(file_only)
    assert console.filter(regular)
