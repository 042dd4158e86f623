"""Cancellation on interrupt signals."""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


@contextmanager
def with_interrupt(logger: Any) -> Iterator[threading.Event]:
    """Yield an event that is set when SIGINT arrives or the block ends.

    The SIGINT handler is installed for the duration of the block and the
    previous handler is restored afterwards. Must run in the main thread.
    """
    logger.trace("starting interrupt listener for context cancellation")
    cancelled = threading.Event()
    interrupted = threading.Event()

    def _on_interrupt(signum, frame):
        if cancelled.is_set():
            return
        logger.warn("interrupt received, cancelling context")
        interrupted.set()
        cancelled.set()

    previous = signal.signal(signal.SIGINT, _on_interrupt)
    try:
        yield cancelled
    finally:
        logger.trace("stopping signal listeners and cancelling the context")
        signal.signal(signal.SIGINT, previous)
        if not interrupted.is_set():
            cancelled.set()
            logger.warn("context cancelled, stopping interrupt listener loop")