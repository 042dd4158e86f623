"""Key/value logging adapter on top of the standard logging module."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any

from .keyvals import to_map

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_DISABLED = logging.CRITICAL + 10


class Level(IntEnum):
    """Log levels understood by the adapter."""

    NO_LEVEL = 0
    TRACE = 1
    DEBUG = 2
    INFO = 3
    WARN = 4
    ERROR = 5

    @property
    def logging_level(self) -> int:
        return _LOGGING_LEVELS[self]


_LOGGING_LEVELS = {
    Level.NO_LEVEL: _DISABLED,
    Level.TRACE: TRACE,
    Level.DEBUG: logging.DEBUG,
    Level.INFO: logging.INFO,
    Level.WARN: logging.WARNING,
    Level.ERROR: logging.ERROR,
}


class KVLogAdapter:
    """Logs messages with alternating key/value arguments as structured fields.

    Fields are attached to each record as its ``fields`` attribute.
    """

    def __init__(
        self,
        logger: logging.Logger,
        name: str = "",
        *,
        fields: dict[str, Any] | None = None,
        level: int | None = None,
    ) -> None:
        self._logger = logger
        self.name = name
        self._fields = dict(fields or {})
        self._level = level

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def fields(self) -> dict[str, Any]:
        return dict(self._fields)

    def _effective_level(self) -> int:
        if self._level is not None:
            return self._level
        return self._logger.getEffectiveLevel()

    def _emit(self, level: int, msg: str, args: tuple[Any, ...]) -> None:
        if level < self._effective_level() or self._logger.disabled:
            return
        fields = {**self._fields, **to_map(args)}
        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "(unknown file)",
            0,
            msg,
            (),
            None,
            extra={"fields": fields},
        )
        self._logger.handle(record)

    def log(self, level: Level, msg: str, *args: Any) -> None:
        if level == Level.NO_LEVEL:
            return
        self._emit(Level(level).logging_level, msg, args)

    def trace(self, msg: str, *args: Any) -> None:
        self._emit(TRACE, msg, args)

    def debug(self, msg: str, *args: Any) -> None:
        self._emit(logging.DEBUG, msg, args)

    def info(self, msg: str, *args: Any) -> None:
        self._emit(logging.INFO, msg, args)

    def warn(self, msg: str, *args: Any) -> None:
        self._emit(logging.WARNING, msg, args)

    def error(self, msg: str, *args: Any) -> None:
        self._emit(logging.ERROR, msg, args)

    def is_trace(self) -> bool:
        return self._effective_level() <= TRACE

    def is_debug(self) -> bool:
        return self._effective_level() <= logging.DEBUG

    def is_info(self) -> bool:
        return self._effective_level() <= logging.INFO

    def is_warn(self) -> bool:
        return self._effective_level() <= logging.WARNING

    def is_error(self) -> bool:
        return self._effective_level() <= logging.ERROR

    def with_args(self, *args: Any) -> KVLogAdapter:
        """Return a new adapter whose records always carry the given fields."""
        return KVLogAdapter(
            self._logger,
            self.name,
            fields={**self._fields, **to_map(args)},
            level=self._level,
        )

    def named(self, name: str) -> KVLogAdapter:
        return KVLogAdapter(self._logger, name, fields=self._fields, level=self._level)

    def set_level(self, level: Level) -> None:
        """Override the threshold for this adapter without touching the logger."""
        self._level = Level(level).logging_level