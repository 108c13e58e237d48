# ara_mpp/publisher.py
"""
Snapshot Publisher
==================

Fires the component's snapshot hook every `period_ms` of elapsed time.

Timing rules:
    - period 0 disables publishing
    - the first firing is measured from construction
    - after a firing the timer rebases to "now", so a stall longer than
      several periods yields exactly one firing and no replay burst
"""

from __future__ import annotations

import time
from typing import Callable, Optional


def now_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


class Publisher:
    """Periodic, non-catch-up snapshot timer."""

    def __init__(
        self,
        period_ms: float,
        hook: Callable[[], None],
        clock: Callable[[], float] = now_ms,
    ):
        self.period_ms = period_ms
        self.hook = hook
        self.clock = clock

        self.last_publish_ms = clock()
        self.fire_count = 0

    @property
    def enabled(self) -> bool:
        return bool(self.period_ms)

    def maybe_publish(self) -> bool:
        """
        Invoke the hook if a full period has elapsed.

        Returns:
            True if the hook fired
        """
        if not self.period_ms:
            return False

        now = self.clock()
        if now - self.last_publish_ms < self.period_ms:
            return False

        self.hook()
        self.last_publish_ms = now
        self.fire_count += 1
        return True

    def time_until_due_ms(self) -> Optional[float]:
        """Milliseconds until the next firing (0 if overdue), None if disabled."""
        if not self.period_ms:
            return None
        remaining = self.period_ms - (self.clock() - self.last_publish_ms)
        return max(0.0, remaining)
