"""
Cooperative cancellation token.

A thin wrapper around ``threading.Event``.  Long-running stages poll
``cancelled`` at their checkpoints; retry waits use ``wait()`` so a
cancel interrupts the sleep immediately.
"""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType

from nodekeep.core.errors import ErrorKind, NodekeepError

logger = logging.getLogger(__name__)


class CancelToken:
    """Signal shared between a caller and the pipeline it started."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        return self._event.wait(seconds)

    def raise_if_cancelled(self, what: str = "Operation") -> None:
        if self._event.is_set():
            raise NodekeepError(ErrorKind.CANCELLED, f"{what} cancelled")


def is_cancelled(token: CancelToken | None) -> bool:
    """True when ``token`` is present and has been cancelled."""
    return token is not None and token.cancelled


@contextmanager
def cancel_on_interrupt(token: CancelToken) -> Iterator[CancelToken]:
    """Turn Ctrl-C into ``token.cancel()`` for the duration of the block.

    The first SIGINT only cancels the token so the pipeline can clean
    up; a second one raises ``KeyboardInterrupt`` as usual.  The previous
    handler is restored on exit.  Outside the main thread signals cannot
    be handled, and the block runs unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield token
        return

    def _handle(signum: int, frame: FrameType | None) -> None:
        if token.cancelled:
            raise KeyboardInterrupt
        logger.info("Interrupt received, cancelling")
        token.cancel()

    previous = signal.signal(signal.SIGINT, _handle)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous if previous is not None else signal.default_int_handler)
