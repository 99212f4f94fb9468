# util/logger.py
import logging
import os
import sys
import warnings
from logging.handlers import RotatingFileHandler
from typing import Optional
from config.settings import settings
from util.errors import DataConsistencyWarning

TEXT_FMT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
DATE_FMT = "%Y-%m-%dT%H:%M:%S%z"

# model downloads, PDF parsing and http chatter stay out of INFO output
QUIET_LOGGERS = ("httpx", "httpcore", "sentence_transformers", "urllib3", "fitz")


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[37m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # copy so file handlers sharing the record keep a plain levelname
        record = logging.makeLogRecord(record.__dict__)
        lvl = record.levelname
        record.levelname = f"{self.COLORS.get(lvl, self.RESET)}{lvl}{self.RESET}"
        return super().format(record)


def _console(level: int, color: bool) -> logging.Handler:
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(level)
    fmt_cls = ColoredFormatter if color else logging.Formatter
    ch.setFormatter(fmt_cls(TEXT_FMT, datefmt=DATE_FMT))
    return ch


def _rotating_file(level: int) -> logging.Handler:
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    fh = RotatingFileHandler(
        os.path.join(settings.LOG_DIR, settings.LOG_FILE_NAME),
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(TEXT_FMT, datefmt=DATE_FMT))
    return fh


def init_logger(level: Optional[str] = None) -> logging.Logger:
    """
    Idempotent logger init for the API process and the CLI:
    - stdout always (colored when attached to a terminal),
    - logs/app.log when LOG_TO_FILE, rotated by size,
    - `level` overrides LOG_LEVEL (CLI --verbose),
    - warnings.* land in the "py.warnings" logger; every missing-evidence
      DataConsistencyWarning is reported, not only the first.
    """
    root = logging.getLogger()
    if getattr(root, "_pillmatch_inited", False):
        if level:
            root.setLevel(level.upper())
        return logging.getLogger(settings.LOGGER_NAME)

    name = (level or settings.LOG_LEVEL or "INFO").upper()
    lvl = getattr(logging, name, logging.INFO)
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    root.addHandler(_console(lvl, color=sys.stdout.isatty()))
    if settings.LOG_TO_FILE:
        root.addHandler(_rotating_file(lvl))

    logging.captureWarnings(True)
    warnings.simplefilter("always", DataConsistencyWarning)

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root._pillmatch_inited = True
    logger = logging.getLogger(settings.LOGGER_NAME)
    logger.debug("logger.ready level=%s file=%s", name, settings.LOG_TO_FILE)
    return logger
