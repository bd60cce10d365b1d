# serialsession/runtime/signal.py
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

StatusCallback = Callable[[bool], None]


class StatusSignal:
    """
    Single-slot observable boolean.

    - value always holds the latest published state
    - subscribers are called only when the value changes, in publish order
    - wait_for() blocks until the value matches (or a timeout)

    publish(defer=True) updates value and wakes waiters at once but queues the
    callbacks until deliver(). The connection manager publishes that way while
    it holds the session lock and delivers once the lock is released.
    Only the connection manager publishes; everybody else gets a StatusView.
    """

    def __init__(self, initial: bool = False, *, logger: Optional[logging.Logger] = None):
        self._value = bool(initial)
        self._cond = threading.Condition()
        self._subscribers: List[StatusCallback] = []
        self._pending: List[bool] = []
        # re-entrant: a callback may trigger a nested deliver() on its own thread
        self._delivering = threading.RLock()
        self._log = logger or logging.getLogger(__name__)

    @property
    def value(self) -> bool:
        with self._cond:
            return self._value

    def publish(self, value: bool, *, defer: bool = False) -> bool:
        """Set the value. Returns True if it changed."""
        value = bool(value)
        with self._cond:
            if value == self._value:
                return False
            self._value = value
            self._pending.append(value)
            self._cond.notify_all()

        if not defer:
            self.deliver()
        return True

    def deliver(self) -> None:
        """
        Run subscribers for every queued change, oldest first.

        Only one thread delivers at a time; a thread that finds delivery busy
        returns at once and the active deliverer picks up its changes.
        """
        while True:
            if not self._delivering.acquire(blocking=False):
                return
            try:
                while True:
                    with self._cond:
                        if not self._pending:
                            break
                        value = self._pending.pop(0)
                        cbs = list(self._subscribers)
                    for cb in cbs:
                        try:
                            cb(value)
                        except Exception:
                            self._log.exception("STATUS_CALLBACK_ERROR")
            finally:
                self._delivering.release()

            # a change queued by a thread that skipped delivery meanwhile
            with self._cond:
                if not self._pending:
                    return

    def subscribe(self, cb: StatusCallback, *, replay: bool = False) -> Callable[[], None]:
        """
        Register cb for changes. With replay=True cb is also called once with
        the current value. Returns an unsubscribe function.
        """
        with self._cond:
            self._subscribers.append(cb)
            current = self._value

        if replay:
            try:
                cb(current)
            except Exception:
                self._log.exception("STATUS_CALLBACK_ERROR")

        def _unsubscribe() -> None:
            with self._cond:
                if cb in self._subscribers:
                    self._subscribers.remove(cb)

        return _unsubscribe

    def wait_for(self, value: bool, timeout: Optional[float] = None) -> bool:
        """Block until the signal equals value. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._value == bool(value), timeout=timeout)

    def view(self) -> "StatusView":
        return StatusView(self)


class StatusView:
    """Read-only face of a StatusSignal."""

    def __init__(self, signal: StatusSignal):
        self._signal = signal

    @property
    def value(self) -> bool:
        return self._signal.value

    def subscribe(self, cb: StatusCallback, *, replay: bool = False) -> Callable[[], None]:
        return self._signal.subscribe(cb, replay=replay)

    def wait_for(self, value: bool, timeout: Optional[float] = None) -> bool:
        return self._signal.wait_for(value, timeout=timeout)
