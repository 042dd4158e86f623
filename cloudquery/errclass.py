"""Classification of errors that should not be reported as crashes."""

from __future__ import annotations

import asyncio
import concurrent.futures
import re
import socket
import ssl
from collections.abc import Iterator
from enum import Enum
from typing import Any

from .tracing import StatusCode

_SQLSTATE = re.compile(r"\(SQLSTATE ([0-9A-Z]{5})\)")
_AUTH_PREFIXES = (
    "failed to create aws client for",
    "failed to retrieve credentials for",
)
# 28: invalid authorization, 3D: invalid catalog name, 57: operator intervention
_IGNORED_PG_CLASSES = frozenset({"28", "3D", "57"})


class ErrorClass(str, Enum):
    NONE = ""
    CANCELLED = "cancelled"
    AUTH = "auth"
    CONNECTION = "connection"
    DATABASE = "database"


class DiagnosticType(Enum):
    UNKNOWN = "unknown"
    RESOLVING = "resolving"
    ACCESS = "access"
    THROTTLE = "throttle"
    DATABASE = "database"
    SCHEMA = "schema"
    INTERNAL = "internal"
    USER = "user"


class Diagnostic(Exception):
    """A provider diagnostic, optionally carrying a redacted variant."""

    def __init__(
        self,
        message: str,
        diag_type: DiagnosticType = DiagnosticType.INTERNAL,
        *,
        redacted: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.diag_type = diag_type
        self._redacted = redacted

    def redacted(self) -> BaseException | None:
        return self._redacted


class DatabaseError(Exception):
    """A database error with its SQLSTATE code."""

    def __init__(self, message: str, code: str = "") -> None:
        super().__init__(message)
        self.code = code


def _chain(err: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def should_ignore_pg_code(code: str) -> bool:
    """True for SQLSTATE classes that indicate setup problems, not bugs."""
    return len(code) >= 2 and code[:2] in _IGNORED_PG_CLASSES


def classify_error(err: BaseException) -> ErrorClass:
    """Classify err; anything not ErrorClass.NONE is not worth crash reporting."""
    chain = list(_chain(err))

    if any(str(e).startswith(_AUTH_PREFIXES) for e in chain):
        return ErrorClass.AUTH

    if any(isinstance(e, (asyncio.CancelledError, concurrent.futures.CancelledError)) for e in chain):
        return ErrorClass.CANCELLED

    if any(isinstance(e, (ConnectionRefusedError, socket.gaierror)) for e in chain):
        return ErrorClass.CONNECTION

    database = next((e for e in chain if isinstance(e, DatabaseError)), None)
    if database is not None and should_ignore_pg_code(database.code):
        return ErrorClass.DATABASE

    if any(isinstance(e, ssl.SSLError) for e in chain):
        return ErrorClass.DATABASE

    return ErrorClass.NONE


def record_error(span: Any, err: BaseException | None) -> bool:
    """Mark span as errored; return True if err itself was recorded on it."""
    if err is None:
        return False

    if isinstance(err, Diagnostic):
        redacted = err.redacted()
        if redacted is not None:
            err = redacted

    cls = classify_error(err)
    if cls is not ErrorClass.NONE:
        span.set_status(StatusCode.ERROR, cls.value)
        return False

    span.record_error(err)
    span.set_status(StatusCode.ERROR, str(err))
    return True


def should_ignore_diag(diag: Diagnostic) -> bool:
    """True for database diagnostics whose SQLSTATE should not be reported."""
    if diag.diag_type is DiagnosticType.DATABASE:
        match = _SQLSTATE.search(str(diag))
        if match and should_ignore_pg_code(match.group(1)):
            return True
    return False