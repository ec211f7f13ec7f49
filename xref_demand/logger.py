import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from . import settings

CONSOLE_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3


def setup_logger(
    name: str | None = None,
    log_level: int | str | None = None,
    log_file: Path | None = None,
) -> logging.Logger:
    """
    Attaches a stdout handler (bare messages) and a rotating file handler
    (timestamped) to the named logger, the root logger by default.

    Calling it again only updates the level. Handlers installed by others,
    such as a test runner's capture handler, are left alone.
    """
    level = log_level if log_level is not None else settings.LOG_LEVEL
    logger = logging.getLogger(name)
    logger.setLevel(level)

    ours = [h for h in logger.handlers if getattr(h, "_xref_handler", False)]
    if ours:
        for handler in ours:
            handler.setLevel(level)
        return logger

    log_file = Path(log_file or settings.LOG_FILE)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    file_handler = RotatingFileHandler(
        log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))

    for handler in (console_handler, file_handler):
        handler.setLevel(level)
        handler._xref_handler = True
        logger.addHandler(handler)

    return logger
