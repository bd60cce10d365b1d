# serialsession/runtime/exchange.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from serialsession.core.errors import NotConnectedError, SerialSessionError
from serialsession.interfaces.log_sink import SessionLogger
from serialsession.transport.base import ChannelHandle

from .connection import ConnectionManager

Payload = Union[bytes, str]
WriteFn = Callable[[ChannelHandle, Payload], None]
ReadFn = Callable[[ChannelHandle, bool], Payload]  # (handle, as_text)


@dataclass(frozen=True)
class Exchange:
    """
    One request paired with its response, or with the error that ended it.
    """
    request: Payload
    response: Optional[Payload] = None
    error: Optional[SerialSessionError] = None
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None


class ExchangeCoordinator:
    """
    write -> fixed read delay -> read, as one step under the session lock.

    Holding the lock across the delay keeps other writers off the line until
    the response has been collected. Nothing is retried here; recovery is up
    to the next ensure_connected() or the reconnect worker.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        *,
        write: WriteFn,
        read: ReadFn,
        read_delay_s: float,
        events: SessionLogger,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._manager = manager
        self._write = write
        self._read = read
        self._read_delay_s = float(read_delay_s)
        self._events = events
        self._sleep = sleep

    def run(self, request: Payload) -> Exchange:
        as_text = isinstance(request, str)
        t0 = time.perf_counter()

        with self._manager.guard():
            try:
                handle = self._manager.acquire_handle()
                self._write(handle, request)
                if self._read_delay_s > 0:
                    self._sleep(self._read_delay_s)
                response = self._read(handle, as_text)
            except NotConnectedError as e:
                self._events.warning(
                    "SERIAL_EXCHANGE_SKIPPED",
                    f"Exchange on {self._manager.port} skipped: {e.message}",
                    port=self._manager.port,
                )
                return Exchange(request=request, error=e, elapsed_s=time.perf_counter() - t0)
            except SerialSessionError as e:
                self._manager.record_failure(e)
                return Exchange(request=request, error=e, elapsed_s=time.perf_counter() - t0)

        elapsed = time.perf_counter() - t0
        self._events.debug(
            "SERIAL_EXCHANGE_OK",
            "",
            port=self._manager.port,
            request_len=len(request),
            response_len=len(response),
            elapsed_ms=int(elapsed * 1000),
        )
        return Exchange(request=request, response=response, elapsed_s=elapsed)
