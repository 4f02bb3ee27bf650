import logging
import pathlib
from logging.handlers import RotatingFileHandler

from srf.const import (
    SRF_LOGGING_BACKUP_COUNT,
    SRF_LOGGING_FORMAT,
    SRF_LOGGING_LOG_LEVEL,
    SRF_LOGGING_MAX_BYTES,
    SRF_SUPPORTED_EXT_FTYPE,
)


def get_logger(name: str,
               level: int = SRF_LOGGING_LOG_LEVEL,
               log_path: str | pathlib.Path | None = None) -> logging.Logger:
    """
    Returns the named logger, configured on first use with a console handler.

    :param str name: The logger name, usually the class name of the caller
    :param int level: The level of the logger and of the handlers it gets here
    :param str | pathlib.Path | None log_path: When set, the records are also written to this file,
        rotated every ``SRF_LOGGING_MAX_BYTES``. Asking again for the same file adds no second handler.
    :return logging.Logger: The logger
    """
    logger = logging.getLogger(name)
    formatter = logging.Formatter(SRF_LOGGING_FORMAT)

    if logger.level == logging.NOTSET:
        logger.setLevel(level or SRF_LOGGING_LOG_LEVEL)

    if not logger.hasHandlers():
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level or SRF_LOGGING_LOG_LEVEL)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_path:
        _add_file_handler(logger, pathlib.Path(log_path).resolve(), level, formatter)

    return logger


def _add_file_handler(logger: logging.Logger,
                      log_path: pathlib.Path,
                      level: int,
                      formatter: logging.Formatter) -> None:
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler) and pathlib.Path(handler.baseFilename) == log_path:
            return

    log_path.parent.mkdir(parents=True, exist_ok=True)

    rot_file_handler = RotatingFileHandler(
        log_path,
        maxBytes=SRF_LOGGING_MAX_BYTES,
        backupCount=SRF_LOGGING_BACKUP_COUNT,
    )
    rot_file_handler.setLevel(level or SRF_LOGGING_LOG_LEVEL)
    rot_file_handler.setFormatter(formatter)
    logger.addHandler(rot_file_handler)


def get_filetype(file_path: pathlib.Path) -> str | None:
    if not file_path.exists():
        return None

    return SRF_SUPPORTED_EXT_FTYPE.get(file_path.suffix.lower().lstrip("."))
