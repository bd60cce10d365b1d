# serialsession/runtime/failures.py
from __future__ import annotations


class FailureTracker:
    """
    Counts consecutive I/O failures on one session.

    Not synchronised on its own: every call happens under the session lock.
    """

    def __init__(self, max_failures: int):
        if max_failures < 0:
            raise ValueError("max_failures must be >= 0")
        self.max_failures = int(max_failures)
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def record(self) -> int:
        self._count += 1
        return self._count

    def reset(self) -> None:
        self._count = 0

    def threshold_reached(self) -> bool:
        # A clean counter never forces a reset, even with max_failures=0.
        return self._count > 0 and self._count >= self.max_failures
