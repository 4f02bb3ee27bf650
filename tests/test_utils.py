import logging
from logging.handlers import RotatingFileHandler

from srf.utils import get_filetype, get_logger


def _file_handlers(logger):
    return [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]


def test_get_logger_adds_file_handler_once(tmp_path):
    log_path = tmp_path / "nested" / "srf.log"
    logger = get_logger("srf-test-file-logger", log_path=log_path)
    try:
        assert get_logger("srf-test-file-logger", log_path=log_path) is logger
        assert len(_file_handlers(logger)) == 1

        logger.info("hello from the forest")
        assert "hello from the forest" in log_path.read_text()
    finally:
        for handler in _file_handlers(logger):
            logger.removeHandler(handler)
            handler.close()


def test_get_logger_without_path_has_no_file_handler():
    logger = get_logger("srf-test-console-logger")
    assert _file_handlers(logger) == []
    assert logger.level == logging.INFO


def test_get_filetype(tmp_path):
    csv = tmp_path / "data.CSV"
    csv.write_text("a\n1\n")

    assert get_filetype(csv) == "csv"
    assert get_filetype(tmp_path / "missing.parquet") is None
