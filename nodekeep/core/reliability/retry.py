"""
Retry policy — bounded exponential backoff with optional jitter.

The delay function is injectable so tests run without sleeping; when a
``CancelToken`` is supplied the wait is interruptible.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from nodekeep.core.cancellation import CancelToken

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """How many times to try, and how long to wait between tries.

    ``delay_for(1)`` is ``base_delay``; each later attempt doubles it,
    capped at ``max_delay``.  ``jitter`` is a fraction of the delay
    added at random (0 disables it).
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 30.0
    jitter: float = 0.0
    sleep: Callable[[float], None] | None = None

    def delay_for(self, attempt: int) -> float:
        """Delay after the ``attempt``-th failure (1-based)."""
        delay = min(self.base_delay * (2 ** (max(attempt, 1) - 1)), self.max_delay)
        if self.jitter > 0:
            delay += random.uniform(0, delay * self.jitter)
        return delay

    def pause(self, attempt: int, cancel: CancelToken | None = None) -> bool:
        """Wait before the next attempt.

        Returns:
            False if cancellation was requested during the wait.
        """
        delay = self.delay_for(attempt)
        logger.debug("Retrying in %.2fs (after attempt %d/%d)", delay, attempt, self.max_attempts)
        if self.sleep is not None:
            self.sleep(delay)
            return not (cancel is not None and cancel.cancelled)
        if cancel is not None:
            return not cancel.wait(delay)
        time.sleep(delay)
        return True
