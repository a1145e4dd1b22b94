"""Console and file logging with a fatal level that raises."""

from __future__ import annotations

import logging
import os
import sys
import threading
from pathlib import Path

LOG_FILE_NAME = "logs.txt"
CRITICAL_MESSAGE = "Critical Error ... Exiting"

_LEVEL_NAMES = {
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "critical",
}
_LEVEL_COLOURS = {
    logging.INFO: "\x1b[36m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[1m\x1b[41m",
}
_RESET = "\x1b[0m"


class CriticalError(RuntimeError):
    """Raised after a critical message has been logged."""


class _LevelFormatter(logging.Formatter):
    def __init__(self, colored: bool = False) -> None:
        super().__init__(
            "[%(asctime)s.%(msecs)03d] [%(level)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self._colored = colored

    def format(self, record: logging.LogRecord) -> str:
        name = _LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        if self._colored:
            name = f"{_LEVEL_COLOURS.get(record.levelno, '')}{name}{_RESET}"
        record.level = name
        return super().format(record)


def _compose(parts: tuple[object, ...]) -> str:
    return "".join(f"{part} " for part in parts)


class Logger:
    """Writes every message both to stdout and to ``logs.txt`` in ``log_dir``."""

    def __init__(self, log_dir: str | os.PathLike[str]) -> None:
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / LOG_FILE_NAME
        self._logger = logging.Logger(f"leafslice[{self.log_dir}]", logging.INFO)
        self._logger.propagate = False

        file_handler = logging.FileHandler(self.log_file, encoding="utf-8")
        file_handler.setFormatter(_LevelFormatter())
        console_handler = logging.StreamHandler(sys.stdout)
        isatty = getattr(sys.stdout, "isatty", None)
        console_handler.setFormatter(_LevelFormatter(colored=bool(isatty and isatty())))
        self._logger.addHandler(console_handler)
        self._logger.addHandler(file_handler)

    def _emit(self, level: int, parts: tuple[object, ...]) -> str:
        message = _compose(parts)
        self._logger.log(level, message)
        return message

    def info(self, *args: object) -> str:
        """Log the arguments, each followed by a space, at info level."""
        return self._emit(logging.INFO, args)

    def warn(self, *args: object) -> str:
        """Log the arguments at warning level."""
        return self._emit(logging.WARNING, args)

    def error(self, *args: object) -> str:
        """Log the arguments at error level."""
        return self._emit(logging.ERROR, args)

    def critical(self, *args: object) -> None:
        """Log the arguments at critical level, then raise :class:`CriticalError`."""
        self._emit(logging.CRITICAL, args)
        raise CriticalError(CRITICAL_MESSAGE)


_instances: dict[Path, Logger] = {}
_instances_lock = threading.Lock()


def get_logger(log_dir: str | os.PathLike[str]) -> Logger:
    """Return the shared logger for ``log_dir``, creating it on first use."""
    key = Path(log_dir).resolve()
    with _instances_lock:
        logger = _instances.get(key)
        if logger is None:
            logger = _instances[key] = Logger(key)
        return logger