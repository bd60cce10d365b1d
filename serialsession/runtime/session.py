# serialsession/runtime/session.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, TypeVar, Union, overload

from serialsession.config.settings import SerialConfig
from serialsession.core.errors import (
    AlreadyConnectedError,
    NotConnectedError,
    ReadFailedError,
    SerialSessionError,
    WriteFailedError,
)
from serialsession.interfaces.log_sink import SessionLogger
from serialsession.transport.base import ChannelDriver, ChannelHandle
from serialsession.transport.errors import TransportError
from serialsession.transport.uart import UARTDriver

from .connection import ConnectionManager
from .exchange import Exchange, ExchangeCoordinator, Payload
from .failures import FailureTracker
from .reconnect import ReconnectWorker
from .signal import StatusView
from .state import ConnectionState, ConnectionStatus

T = TypeVar("T")

BytesLike = Union[bytes, bytearray, memoryview]


class SerialSession:
    """
    Resilient session over one serial port.

    - start() connects once, or launches the reconnect worker when
      config.auto_reconnect is set
    - every I/O call runs under one session lock and first makes sure the
      port is usable, reconnecting if it is gone or has failed too often
    - I/O failures never raise: writes return False, reads return None, and
      the reason goes to the log sink
    - stop() stops the worker, releases the port, and ends the session for good

    Usable as a context manager (start on enter, stop on exit).
    """

    def __init__(
        self,
        config: SerialConfig,
        *,
        driver: Optional[ChannelDriver] = None,
        logger: Optional[logging.Logger] = None,
        join_timeout_s: float = 2.0,
    ):
        self._config = config
        self._driver = driver or UARTDriver()
        self._log = logger or logging.getLogger(__name__)
        self._events = SessionLogger(self._log, config.log_sink)
        self._join_timeout_s = join_timeout_s

        self._state = ConnectionState(failures=FailureTracker(config.max_failure_count))
        self._manager = ConnectionManager(
            config,
            self._driver,
            lock=threading.RLock(),
            state=self._state,
            events=self._events,
        )
        self._exchanges = ExchangeCoordinator(
            self._manager,
            write=self._write_handle,
            read=self._read_handle,
            read_delay_s=config.read_delay_s,
            events=self._events,
        )

        self._worker: Optional[ReconnectWorker] = None
        self._started = False

    # ------------------------------------------------------------------
    # properties
    # ------------------------------------------------------------------
    @property
    def config(self) -> SerialConfig:
        return self._config

    @property
    def port(self) -> str:
        return self._config.port

    @property
    def is_connected(self) -> bool:
        return self._state.connected.value

    @property
    def connection_status(self) -> StatusView:
        """Observable connected flag (value / subscribe / wait_for)."""
        return self._state.connected.view()

    @property
    def is_stopped(self) -> bool:
        return self._manager.closed

    def status(self) -> ConnectionStatus:
        with self._manager.guard():
            return ConnectionStatus(
                port=self.port,
                connected=self._state.connected.value,
                failures=self._state.failures.count,
                max_failures=self._state.failures.max_failures,
                auto_reconnect=self._config.auto_reconnect,
                stopped=self._manager.closed,
                last_error=self._state.last_error,
            )

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        with self._manager.guard():
            if self._manager.closed:
                self._events.warning(
                    "SESSION_START_REJECTED",
                    f"Session on {self.port} was stopped; create a new one.",
                    port=self.port,
                )
                return
            if self._started:
                return
            self._started = True

        self._events.info(
            "SESSION_START",
            f"Starting session on {self.port}.",
            port=self.port,
            auto_reconnect=self._config.auto_reconnect,
        )

        if self._config.auto_reconnect:
            self._worker = ReconnectWorker(self._manager, self._config.retry_delay_s, logger=self._log)
            self._worker.start()
            return

        try:
            self._manager.connect()
        except AlreadyConnectedError:
            # connect() was called by hand before start()
            self._log.debug("SESSION_START_ALREADY_CONNECTED port=%s", self.port)

    def stop(self) -> None:
        self._events.info("SESSION_STOP", f"Stopping session on {self.port}.", port=self.port)

        worker = self._worker
        if worker is not None:
            worker.stop()
        try:
            self._manager.shutdown()
        finally:
            if worker is not None and worker is not threading.current_thread():
                worker.join(timeout=self._join_timeout_s)
                if worker.is_alive():
                    self._log.warning("RECONNECT_WORKER_JOIN_TIMEOUT port=%s", self.port)
            self._worker = None

    def connect(self) -> bool:
        """
        One connect attempt. Raises AlreadyConnectedError if the port is
        already open; other failures are logged and return False.
        """
        return self._manager.connect()

    def disconnect(self) -> None:
        self._manager.disconnect()

    def ensure_connected(self) -> bool:
        return self._manager.ensure_connected()

    def list_available_ports(self) -> list[str]:
        return self._driver.list_ports()

    def __enter__(self) -> "SerialSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------
    def write(self, data: Union[BytesLike, str]) -> bool:
        """Write bytes (or text, UTF-8). Returns True if the driver took it all."""
        return self._guarded("write", lambda h: self._write_handle(h, data) or True) is not None

    def write_text(self, text: str) -> bool:
        return self.write(str(text))

    def read_bytes(self) -> Optional[bytes]:
        return self._guarded("read", lambda h: self._read_handle(h, False))

    def read_text(self) -> Optional[str]:
        return self._guarded("read", lambda h: self._read_handle(h, True))

    @overload
    def send_receive(self, request: str) -> Optional[str]: ...
    @overload
    def send_receive(self, request: BytesLike) -> Optional[bytes]: ...

    def send_receive(self, request):
        """Write, wait read_delay_ms, read. Response type follows request type."""
        return self.exchange(request).response

    def send_receive_text(self, request: str) -> Optional[str]:
        return self.exchange(str(request)).response

    def exchange(self, request: Union[BytesLike, str]) -> Exchange:
        if not isinstance(request, str):
            request = bytes(request)
        if self._manager.closed:
            return Exchange(request=request, error=self._stopped_error())
        return self._exchanges.run(request)

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _guarded(self, op: str, fn: Callable[[ChannelHandle], T]) -> Optional[T]:
        with self._manager.guard():
            if self._manager.closed:
                self._log.debug("SESSION_STOPPED op=%s port=%s", op, self.port)
                return None
            try:
                handle = self._manager.acquire_handle()
                return fn(handle)
            except NotConnectedError as e:
                self._events.warning(
                    "SERIAL_NOT_CONNECTED",
                    f"Cannot {op} on {self.port}: {e.message}",
                    port=self.port,
                    op=op,
                )
                return None
            except SerialSessionError as e:
                self._manager.record_failure(e)
                return None

    def _write_handle(self, handle: ChannelHandle, payload: Payload | BytesLike) -> None:
        try:
            if isinstance(payload, str):
                handle.write_text(payload)
            else:
                handle.write_bytes(bytes(payload))
        except Exception as e:
            if not isinstance(e, TransportError):
                self._log.exception("SERIAL_WRITE_ERROR port=%s", self.port)
            raise WriteFailedError(
                f"Failed to write to {self.port}",
                hint=str(e) or None,
                details={"port": self.port, "length": len(payload)},
            ) from None

    def _read_handle(self, handle: ChannelHandle, as_text: bool) -> Payload:
        try:
            data = handle.read_text() if as_text else handle.read_bytes()
        except Exception as e:
            if not isinstance(e, TransportError):
                self._log.exception("SERIAL_READ_ERROR port=%s", self.port)
            raise ReadFailedError(
                f"Failed to read from {self.port}",
                hint=str(e) or None,
                details={"port": self.port},
            ) from None

        if not data:
            raise ReadFailedError(
                f"Failed to read from {self.port}",
                hint="no data available",
                details={"port": self.port},
            )
        return data

    def _stopped_error(self) -> NotConnectedError:
        return NotConnectedError(
            f"Session on {self.port} is stopped.",
            details={"port": self.port, "stopped": True},
        )
