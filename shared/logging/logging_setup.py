"""Logging setup: timezone-aware timestamps, level prefixes and optional console colors.

LOG_LEVEL (debug, info, warning, error), TIMEZONE, ROOT_DIR, LOG_FILE_MAX_BYTES and
LOG_FILE_BACKUPS are read once at import time.
"""

from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger

_LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}
loglevel = _LEVELS.get(os.getenv("LOG_LEVEL", "info").strip().lower(), logging.INFO)
debug_mode = loglevel == logging.DEBUG

# third-party loggers that only speak up on warnings unless debugging
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

# Supported ANSI color names for the color= parameter
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
    "white":   "\033[37m",
}


class TimezoneFormatter(logging.Formatter):
    """Renders timestamps in a fixed timezone and marks warnings and errors with a symbol."""

    _PREFIXES = ((logging.ERROR, "⛔ "), (logging.WARNING, "⚠️ "))

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, self.tz)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat()

    def format(self, record):
        prefix = next((mark for level, mark in self._PREFIXES if record.levelno >= level), "")
        # work on a copy, the same record reaches the console and file handlers
        marked = logging.makeLogRecord(record.__dict__)
        marked.msg = prefix + record.getMessage()
        marked.args = ()
        return super().format(marked)


class ColoredFormatter(TimezoneFormatter):
    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi else line


class ColorLogger:
    """Logger wrapper whose level methods accept color=<name> for the console.

    The color travels in the record's extra dict, so file output stays plain.
    Anything else (setLevel, handlers, ...) is delegated to the wrapped logger.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.CRITICAL, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, color, kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def setup_logging() -> ColorLogger:
    """Configure console and rotating file logging and return the application logger.

    Safe to call repeatedly; dictConfig replaces the previous handlers.
    """
    root_dir = os.getenv("ROOT_DIR", os.getcwd())
    log_dir = os.path.join(root_dir, "logs")
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    os.makedirs(log_dir, exist_ok=True)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "()": TimezoneFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
            "colored": {
                "()": ColoredFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "level": loglevel,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "level": loglevel,
                "filename": os.path.join(log_dir, "edit_bridge.log"),
                "maxBytes": int(os.getenv("LOG_FILE_MAX_BYTES", 10 * 1024 * 1024)),
                "backupCount": int(os.getenv("LOG_FILE_BACKUPS", 3)),
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": loglevel,
        },
    }

    logging.config.dictConfig(logging_config)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger("edit_bridge"))
