"""Process-wide logging setup: coloured console output and rolling log files."""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, TextIO

from .kvlog import TRACE

LOGGER_NAME = "cloudquery"

COLOR_TRACE = "35"
COLOR_DEBUG = "34"
COLOR_INFO = "36"
COLOR_SUCCESS = "32"
COLOR_WARNING = "33"
COLOR_ERROR = "31"
COLOR_ERROR_BOLD = "31;1"

_DEFAULT_MAX_SIZE_MB = 100

_LEVEL_LABELS = {
    "trace": (COLOR_TRACE, "TRC"),
    "debug": (COLOR_DEBUG, "DBG"),
    "info": (COLOR_INFO, "INF"),
    "warn": (COLOR_WARNING, "WRN"),
    "error": (COLOR_ERROR, "ERR"),
    "fatal": (COLOR_ERROR, "FTL"),
    "panic": (COLOR_ERROR_BOLD, "PNC"),
}


@dataclass
class LogConfig:
    """Logging options."""

    console_logging_enabled: bool = False
    verbose: bool = False
    encode_logs_as_json: bool = False
    file_logging_enabled: bool = False
    directory: str = ""
    filename: str = ""
    max_size: int = 0
    max_backups: int = 0
    max_age: int = 0
    console_no_color: bool = False
    console: TextIO | None = field(default=None, repr=False, compare=False)


def colorize(color: str, no_color: bool, text: str) -> str:
    """Wrap text in the given ANSI SGR colour unless colour is disabled."""
    if no_color:
        return text
    return f"\x1b[{color}m{text}\x1b[0m"


def format_level(no_color: bool) -> Callable[[Any], str]:
    """Return a function that renders a level name as a three-letter label."""

    def render(level: Any) -> str:
        if isinstance(level, str):
            color, label = _LEVEL_LABELS.get(level, (COLOR_INFO, "???"))
            return colorize(color, no_color, label)
        if level is None:
            return colorize(COLOR_INFO, no_color, "???")
        return str(level).upper()[:3]

    return render


def _level_name(levelno: int) -> str:
    if levelno <= TRACE:
        return "trace"
    if levelno <= logging.DEBUG:
        return "debug"
    if levelno <= logging.INFO:
        return "info"
    if levelno <= logging.WARNING:
        return "warn"
    if levelno <= logging.ERROR:
        return "error"
    return "fatal"


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = dict(getattr(record, "fields", None) or {})
    if record.exc_info and record.exc_info[1] is not None:
        fields.setdefault("error", str(record.exc_info[1]))
    return fields


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


class _ConsoleFormatter(logging.Formatter):
    def __init__(self, no_color: bool) -> None:
        super().__init__()
        self._level = format_level(no_color)

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created)
        hour = stamp.hour % 12 or 12
        suffix = "AM" if stamp.hour < 12 else "PM"
        parts = [
            f"{hour}:{stamp.minute:02d}{suffix}",
            self._level(_level_name(record.levelno)),
        ]
        message = record.getMessage()
        if message:
            parts.append(message)
        fields = _record_fields(record)
        parts.extend(f"{key}={_format_value(fields[key])}" for key in sorted(fields))
        return " ".join(parts)


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": _level_name(record.levelno),
            "time": datetime.fromtimestamp(record.created).astimezone().isoformat(
                timespec="seconds"
            ),
        }
        payload.update(_record_fields(record))
        payload["message"] = record.getMessage()
        return json.dumps(payload, default=str)


class _RollingFileHandler(logging.FileHandler):
    """File handler that rotates by size and prunes backups by count and age."""

    def __init__(self, path: Path, max_bytes: int, max_backups: int, max_age_days: int) -> None:
        super().__init__(path, encoding="utf-8", delay=True)
        self._path = Path(path)
        self._max_bytes = max_bytes
        self._max_backups = max_backups
        self._max_age = timedelta(days=max_age_days) if max_age_days > 0 else None

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record) + self.terminator
            current = self._path.stat().st_size if self._path.exists() else 0
            if current and current + len(line.encode("utf-8")) > self._max_bytes:
                self._rotate()
        except Exception:
            self.handleError(record)
            return
        super().emit(record)

    def _rotate(self) -> None:
        if self.stream is not None:
            self.stream.close()
            self.stream = None
        stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S.%f")[:-3]
        backup = self._path.with_name(f"{self._path.stem}-{stamp}{self._path.suffix}")
        os.replace(self._path, backup)
        self._prune()

    def _prune(self) -> None:
        prefix, suffix = f"{self._path.stem}-", self._path.suffix
        backups = sorted(
            (
                p
                for p in self._path.parent.iterdir()
                if p.name.startswith(prefix) and p.name.endswith(suffix) and p != self._path
            ),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        now = datetime.now()
        for position, backup in enumerate(backups):
            too_many = self._max_backups > 0 and position >= self._max_backups
            too_old = (
                self._max_age is not None
                and now - datetime.fromtimestamp(backup.stat().st_mtime) > self._max_age
            )
            if too_many or too_old:
                backup.unlink(missing_ok=True)


def _rolling_file(config: LogConfig, logger: logging.Logger) -> logging.Handler | None:
    directory = Path(config.directory or ".")
    try:
        directory.mkdir(mode=0o744, parents=True, exist_ok=True)
    except OSError as exc:
        logger.error(
            "can't create logging directory",
            extra={"fields": {"error": str(exc), "path": str(directory)}},
        )
        return None
    handler = _RollingFileHandler(
        directory / config.filename,
        (config.max_size or _DEFAULT_MAX_SIZE_MB) * 1024 * 1024,
        config.max_backups,
        config.max_age,
    )
    handler.setFormatter(_JsonFormatter())
    return handler


def configure(config: LogConfig) -> logging.Logger:
    """Set up and return the package logger according to config."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers: list[logging.Handler] = []

    if config.console_logging_enabled:
        if config.encode_logs_as_json:
            stream = sys.stdout
        else:
            stream = config.console if config.console is not None else sys.stderr
        console = logging.StreamHandler(stream)
        console.setFormatter(_ConsoleFormatter(config.console_no_color))
        handlers.append(console)

    if config.file_logging_enabled:
        rolling = _rolling_file(config, logger)
        if rolling is not None:
            handlers.append(rolling)

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    for handler in handlers or [logging.NullHandler()]:
        logger.addHandler(handler)

    logger.propagate = False
    logger.setLevel(logging.DEBUG if config.verbose else logging.INFO)

    logger.info(
        "logging configured",
        extra={
            "fields": {
                "fileLogging": config.file_logging_enabled,
                "jsonLogOutput": config.encode_logs_as_json,
                "consoleLog": config.console_logging_enabled,
                "verbose": config.verbose,
                "logDirectory": config.directory,
                "fileName": config.filename,
                "maxSizeMB": config.max_size,
                "maxBackups": config.max_backups,
                "maxAgeInDays": config.max_age,
            }
        },
    )
    return logger