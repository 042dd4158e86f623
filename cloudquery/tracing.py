"""Lightweight spans and tracers carried in the current context."""

from __future__ import annotations

import contextvars
import hashlib
import platform
import socket
import time
import uuid
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

SpanCloser = Callable[..., bool]

_SYS_NET = Path("/sys/class/net")
_ZERO_MAC = "00:00:00:00:00:00"


class StatusCode(Enum):
    UNSET = "unset"
    OK = "ok"
    ERROR = "error"


@dataclass
class Span:
    """A timed operation with attributes, a status and recorded errors."""

    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    recording: bool = True
    status_code: StatusCode = StatusCode.UNSET
    status_description: str = ""
    errors: list[BaseException] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)
    end_time: float | None = None

    @property
    def ended(self) -> bool:
        return self.end_time is not None

    def set_status(self, code: StatusCode, description: str = "") -> None:
        if not self.recording or self.ended:
            return
        code = StatusCode(code)
        self.status_code = code
        self.status_description = description if code is StatusCode.ERROR else ""

    def record_error(self, err: BaseException) -> None:
        if self.recording and not self.ended:
            self.errors.append(err)

    def end(self) -> None:
        if not self.ended:
            self.end_time = time.time()


class Tracer:
    """Creates spans; a non-recording tracer hands out inert spans."""

    def __init__(self, name: str = "", *, recording: bool = True) -> None:
        self.name = name
        self.recording = recording
        self._spans: list[Span] = []

    @property
    def spans(self) -> list[Span]:
        return list(self._spans)

    def start(self, name: str, attributes: Mapping[str, Any] | None = None) -> Span:
        span = Span(name, dict(attributes or {}), recording=self.recording)
        if self.recording:
            self._spans.append(span)
        return span


_current_tracer: contextvars.ContextVar[Tracer | None] = contextvars.ContextVar(
    "cloudquery_tracer", default=None
)


def tracer_from_context() -> Tracer:
    """Return the current tracer, or a non-recording one if none is set."""
    tracer = _current_tracer.get()
    if tracer is not None:
        return tracer
    return Tracer(recording=False)


@contextmanager
def use_tracer(tracer: Tracer) -> Iterator[Tracer]:
    """Make tracer the current tracer for the duration of the block."""
    token = _current_tracer.set(tracer)
    try:
        yield tracer
    finally:
        _current_tracer.reset(token)


def start_span(
    name: str, attributes: Mapping[str, Any] | None = None
) -> tuple[Span, SpanCloser]:
    """Start a span on the current tracer.

    Returns the span and a closer taking an optional error; the closer ends
    the span and returns True if the error was recorded on it.
    """
    from .errclass import record_error

    span = tracer_from_context().start(name, attributes)

    def close(err: BaseException | None = None) -> bool:
        recorded = record_error(span, err)
        span.end()
        return recorded

    return span, close


def map_to_attributes(mapping: Mapping[str, int]) -> list[tuple[str, int]]:
    """Turn a name-to-count mapping into integer attribute pairs."""
    return [(key, int(value)) for key, value in mapping.items()]


def _hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return ""


def _sha1_hex(value: str) -> str:
    return hashlib.sha1(value.encode("utf-8")).hexdigest()


def os_info() -> list[tuple[str, str]]:
    """Describe the operating system with the hostname masked out."""
    hostname = _hostname()
    if not hostname:
        return []
    uname = platform.uname()
    attrs: list[tuple[str, str]] = []
    if uname.system:
        attrs.append(("os.type", uname.system.lower()))
    if uname.node == hostname:
        parts = [uname.system, "host", uname.release, uname.version, uname.machine]
        attrs.append(("os.description", " ".join(parts)))
    return attrs


def _mac_addresses() -> list[str]:
    addresses: list[str] = []
    try:
        entries = list(_SYS_NET.iterdir())
    except OSError:
        entries = []
    for entry in entries:
        try:
            address = (entry / "address").read_text().strip()
        except OSError:
            continue
        if address and address != _ZERO_MAC:
            addresses.append(address)
    if not addresses:
        node = uuid.getnode()
        if not node & (1 << 40):
            addresses.append(":".join(f"{(node >> shift) & 0xFF:02x}" for shift in range(40, -8, -8)))
    return sorted(addresses)


def mac_host() -> list[tuple[str, str]]:
    """Return a one-way hash of the hardware addresses and hostname."""
    parts = _mac_addresses()
    hostname = _hostname()
    if hostname:
        parts.append(hostname)
    return [("cq.machost", _sha1_hex(",".join(parts)))]