# serialsession/runtime/reconnect.py
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from serialsession.runtime.connection import ConnectionManager

# floor for retry_delay_ms=0, so the loop never spins on the lock
MIN_RETRY_WAIT_S = 0.001


class ReconnectWorker(threading.Thread):
    """
    Thread that keeps the port connected.

    Each round asks the manager to connect if no open handle is installed,
    then waits the retry delay. Connect failures never end the loop; only
    stop() does, and it also cuts the current wait short.
    """

    def __init__(
        self,
        manager: "ConnectionManager",
        retry_delay_s: float,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(name=f"serial-reconnect[{manager.port}]", daemon=True)
        self.manager = manager
        self.retry_delay_s = max(float(retry_delay_s), MIN_RETRY_WAIT_S)
        self._log = logger or logging.getLogger(__name__)
        self._stop_event = threading.Event()
        self.rounds = 0

    def run(self) -> None:
        self._log.debug("RECONNECT_WORKER_START port=%s retry_delay_s=%s", self.manager.port, self.retry_delay_s)
        while not self._stop_event.is_set():
            try:
                self.manager.connect_if_down()
            except Exception:
                self._log.exception("RECONNECT_WORKER_EXCEPTION port=%s", self.manager.port)
            self.rounds += 1
            self._stop_event.wait(self.retry_delay_s)
        self._log.debug("RECONNECT_WORKER_EXIT port=%s rounds=%d", self.manager.port, self.rounds)

    def stop(self) -> None:
        self._stop_event.set()
