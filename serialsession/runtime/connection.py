# serialsession/runtime/connection.py
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from serialsession.config.settings import SerialConfig
from serialsession.core.errors import (
    AlreadyConnectedError,
    CloseFailedError,
    NotConnectedError,
    OpenFailedError,
    ParamsRejectedError,
    SerialSessionError,
)
from serialsession.interfaces.log_sink import SessionLogger
from serialsession.transport.base import ChannelDriver, ChannelHandle
from serialsession.transport.errors import TransportError, TransportParamsError

from .state import ConnectionState


class ConnectionManager:
    """
    Sole owner of ConnectionState.

    Responsibilities:
      - open + parameterize the port (connect)
      - release the port, always leaving a clean disconnected state (disconnect)
      - decide whether the current handle can still be used (ensure_connected)
      - account for I/O failures reported by callers (record_failure)

    Every method runs under guard(): the session lock, which is re-entrant, so
    callers that already hold it (I/O operations, the reconnect worker) can
    chain calls. Status subscribers are never called with the lock held.
    After shutdown() no new handle is ever opened.
    """

    def __init__(
        self,
        config: SerialConfig,
        driver: ChannelDriver,
        *,
        lock: threading.RLock,
        state: ConnectionState,
        events: SessionLogger,
    ):
        self._config = config
        self._driver = driver
        self._lock = lock
        self._state = state
        self._events = events
        self._closed = False
        self._depth = 0

    @property
    def port(self) -> str:
        return self._config.port

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def guard(self) -> Iterator[None]:
        """
        Hold the session lock. Status changes published inside are delivered
        to subscribers after the outermost guard has released the lock.
        """
        outermost = False
        try:
            with self._lock:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                    outermost = self._depth == 0
        finally:
            if outermost:
                self._state.connected.deliver()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def connect(self) -> bool:
        """
        Open the port and apply framing.

        Returns True on success, False if the port could not be opened or
        configured (the reason is logged and kept as last_error).
        Raises AlreadyConnectedError if an open handle is already installed.
        """
        with self.guard():
            if self._closed:
                self._events.debug("SERIAL_CONNECT_SKIPPED", "", port=self.port, reason="session_stopped")
                return False

            if self._handle_is_open():
                raise AlreadyConnectedError(
                    f"Already connected to {self.port}.",
                    details={"port": self.port},
                )

            if self._state.handle is not None:
                # stale handle the driver reports closed; never reused
                self.disconnect()

            try:
                handle = self._open_configured()
            except SerialSessionError as e:
                self._state.last_error = e.message
                self._state.connected.publish(False, defer=True)
                self._events.warning(
                    "SERIAL_CONNECT_FAILED",
                    f"Failed to connect to {self.port}: {e.message}" + (f" ({e.hint})" if e.hint else ""),
                    port=self.port,
                    code=e.code,
                )
                return False

            self._state.handle = handle
            self._state.failures.reset()
            self._state.last_error = None
            self._state.connected.publish(True, defer=True)
            self._events.info("SERIAL_CONNECTED", f"Connected to {self.port}.", port=self.port)
            return True

    def disconnect(self) -> None:
        """Close the handle if any. Never raises; always ends disconnected."""
        with self.guard():
            handle = self._state.handle
            self._state.handle = None
            try:
                if handle is not None:
                    self._close_handle(handle)
            finally:
                self._state.failures.reset()
                self._state.connected.publish(False, defer=True)

            if handle is not None:
                self._events.info("SERIAL_DISCONNECTED", f"Disconnected from {self.port}.", port=self.port)

    def shutdown(self) -> None:
        """Refuse any further connects and release the handle."""
        with self.guard():
            self._closed = True
            self.disconnect()

    def ensure_connected(self) -> bool:
        """
        Make sure a usable handle is installed.

        Resets the connection (full disconnect, then connect) when there is no
        handle, the handle reports closed, or the failure threshold is reached.
        Returns True if a handle is installed afterwards.
        """
        with self.guard():
            if self._closed:
                return False

            reason = self._reset_reason()
            if reason is None:
                return True

            self._events.info(
                "SERIAL_RECONNECT",
                f"Connection not active ({reason}), attempting to reconnect to {self.port}.",
                port=self.port,
                reason=reason.replace(" ", "_"),
            )
            self.disconnect()
            return self.connect()

    def connect_if_down(self) -> bool:
        """
        Reconnect-loop step: connect only if no open handle is installed.
        The failure counter is left to ensure_connected().
        Returns True if a connect attempt was made.
        """
        with self.guard():
            if self._closed or self._handle_is_open():
                return False

            self._events.info(
                "SERIAL_AUTO_RECONNECT",
                f"Auto-reconnect in progress for {self.port}.",
                port=self.port,
            )
            self.connect()
            return True

    def acquire_handle(self) -> ChannelHandle:
        """
        ensure_connected() and hand out the handle, for use while the caller
        keeps holding the lock. Raises NotConnectedError if there is none.
        """
        with self.guard():
            if not self.ensure_connected() or self._state.handle is None:
                raise NotConnectedError(
                    f"Not connected to {self.port}.",
                    hint=self._state.last_error,
                    details={"port": self.port, "stopped": self._closed},
                )
            return self._state.handle

    def record_failure(self, error: SerialSessionError) -> int:
        """Count one I/O failure. Returns the new counter value."""
        with self.guard():
            count = self._state.failures.record()
            self._state.last_error = error.message
            self._events.warning(
                f"SERIAL_{error.code.upper()}",
                error.message + (f" ({error.hint})" if error.hint else ""),
                port=self.port,
                failures=count,
            )
            if self._state.failures.threshold_reached():
                self._events.warning(
                    "SERIAL_FAILURE_THRESHOLD",
                    f"Maximum failure count reached for {self.port}. Resetting connection on next use.",
                    port=self.port,
                    failures=count,
                    max_failures=self._state.failures.max_failures,
                )
            return count

    # ------------------------------------------------------------------
    # internals (lock held)
    # ------------------------------------------------------------------
    def _reset_reason(self) -> Optional[str]:
        if self._state.handle is None:
            return "no handle"
        if not self._handle_is_open():
            return "handle closed"
        if self._state.failures.threshold_reached():
            return "failure threshold reached"
        return None

    def _handle_is_open(self) -> bool:
        handle = self._state.handle
        if handle is None:
            return False
        try:
            return bool(handle.is_open())
        except Exception:
            self._events.logger.exception("SERIAL_IS_OPEN_CHECK_FAILED port=%s", self.port)
            return False

    def _open_configured(self) -> ChannelHandle:
        cfg = self._config

        try:
            handle = self._driver.open(cfg.port)
        except TransportError as e:
            raise OpenFailedError(
                f"Failed to open port: {cfg.port}",
                hint=str(e) or None,
                details={"port": cfg.port},
            ) from None
        except Exception as e:
            self._events.logger.exception("SERIAL_OPEN_ERROR port=%s", cfg.port)
            raise OpenFailedError(
                f"Failed to open port: {cfg.port}",
                hint=str(e) or None,
                details={"port": cfg.port},
            ) from None

        try:
            handle.set_params(cfg.baud_rate, cfg.data_bits, cfg.stop_bits, cfg.parity)
        except Exception as e:
            if not isinstance(e, TransportParamsError):
                self._events.logger.exception("SERIAL_PARAMS_ERROR port=%s", cfg.port)
            self._close_handle(handle)
            raise ParamsRejectedError(
                "Failed to set port parameters.",
                hint=str(e) or None,
                details={
                    "port": cfg.port,
                    "baud_rate": cfg.baud_rate,
                    "data_bits": int(cfg.data_bits),
                    "stop_bits": cfg.stop_bits.value,
                    "parity": cfg.parity.name.lower(),
                },
            ) from None

        return handle

    def _close_handle(self, handle: ChannelHandle) -> None:
        try:
            handle.close()
        except Exception as e:
            err = CloseFailedError(
                f"Failed to close port {self.port}: {e}",
                details={"port": self.port},
            )
            self._events.warning("SERIAL_CLOSE_FAILED", err.message, port=self.port)
