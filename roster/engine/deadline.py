"""Wall-clock deadline and cancellation for schedule generation.

The generator calls Deadline.check() between phases and inside its bounded
loops. check() raises GenerationCancelled once the time limit has elapsed or
the caller has cancelled the token; ScheduleGenerator.generate_schedule()
turns that into a failed SchedulingResult.
"""

import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)


class GenerationCancelled(Exception):
    """Raised when a generation run is cancelled or runs out of time."""


class CancellationToken:
    """Flag a caller can set from elsewhere to stop a running generation."""

    def __init__(self):
        self._cancelled = False
        self.reason = None

    def cancel(self, reason: str = "cancelled by caller"):
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class Deadline:
    """
    Time limit and/or cancellation token for one run.

    Args:
        time_limit_seconds: Wall-clock budget; None means unlimited
        token: Optional CancellationToken shared with the caller
    """

    def __init__(self, time_limit_seconds: Optional[float] = None, token: Optional[CancellationToken] = None):
        self.time_limit_seconds = time_limit_seconds
        self.token = token
        self.started_at = time.monotonic()

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def remaining(self) -> Optional[float]:
        if self.time_limit_seconds is None:
            return None
        return max(0.0, self.time_limit_seconds - self.elapsed())

    def expired(self) -> bool:
        if self.token is not None and self.token.cancelled:
            return True
        return self.time_limit_seconds is not None and self.elapsed() >= self.time_limit_seconds

    def check(self, where: str = ""):
        """Raise GenerationCancelled when the run must stop."""
        if not self.expired():
            return
        if self.token is not None and self.token.cancelled:
            reason = self.token.reason
        else:
            reason = f"time limit of {self.time_limit_seconds}s exceeded"
        logger.warning(f"Generation stopped{' during ' + where if where else ''}: {reason}")
        raise GenerationCancelled(reason)
