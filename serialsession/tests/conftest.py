from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional

import pytest

from serialsession.config.settings import SerialConfig
from serialsession.runtime.session import SerialSession
from serialsession.transport.base import ChannelDriver, ChannelHandle
from serialsession.transport.errors import TransportIOError, TransportOpenError, TransportParamsError


class FakeHandle(ChannelHandle):
    """Scripted handle. Behaviour is driven by flags on the owning FakeDriver."""

    def __init__(self, driver: "FakeDriver", port: str):
        self.driver = driver
        self.port = port
        self.opened = True
        self.params = None
        self.writes: List[bytes] = []

    def set_params(self, baud_rate, data_bits, stop_bits, parity) -> None:
        if self.driver.reject_params:
            raise TransportParamsError("baud rate not supported")
        self.params = (baud_rate, data_bits, stop_bits, parity)

    def write_bytes(self, data: bytes) -> int:
        d = self.driver
        d.record("write", data)
        if d.write_failures > 0:
            d.write_failures -= 1
            raise TransportIOError("write fail")
        if d.write_delay_s:
            # split the write in two halves to expose interleaving
            half = len(data) // 2
            d.wire.append(data[:half])
            time.sleep(d.write_delay_s)
            d.wire.append(data[half:])
        else:
            d.wire.append(data)
        self.writes.append(bytes(data))
        return len(data)

    def read_bytes(self) -> bytes:
        d = self.driver
        d.record("read", b"")
        if d.read_failures > 0:
            d.read_failures -= 1
            raise TransportIOError("read fail")
        if d.responses:
            return d.responses.pop(0)
        return b""

    def is_open(self) -> bool:
        return self.opened

    def close(self) -> None:
        self.driver.closes += 1
        self.opened = False
        if self.driver.close_error:
            raise TransportIOError("close fail")


class FakeDriver(ChannelDriver):
    def __init__(self):
        self.opens = 0
        self.closes = 0
        self.open_failures = 0
        self.open_fail_until: Optional[float] = None
        self.reject_params = False
        self.write_failures = 0
        self.read_failures = 0
        self.write_delay_s = 0.0
        self.close_error = False
        self.responses: List[bytes] = []
        self.handles: List[FakeHandle] = []
        self.wire: List[bytes] = []
        self.events: List[tuple] = []
        self.ports = ["/dev/ttyFAKE1", "/dev/ttyFAKE0"]
        self._lock = threading.Lock()

    def record(self, kind: str, data: bytes) -> None:
        with self._lock:
            self.events.append((kind, time.monotonic(), bytes(data)))

    @property
    def handle(self) -> Optional[FakeHandle]:
        return self.handles[-1] if self.handles else None

    def open(self, port: str) -> FakeHandle:
        with self._lock:
            self.opens += 1
        if self.open_failures > 0:
            self.open_failures -= 1
            raise TransportOpenError(f"could not open port {port}")
        if self.open_fail_until is not None and time.monotonic() < self.open_fail_until:
            raise TransportOpenError(f"could not open port {port}")
        h = FakeHandle(self, port)
        self.handles.append(h)
        return h

    def list_ports(self) -> list[str]:
        return sorted(self.ports)


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def sink() -> List[str]:
    return []


@pytest.fixture
def make_session(driver, sink):
    """
    Factory for sessions on the fake driver. Sessions are stopped on teardown.
    Defaults: port PORT-A, no read delay, 20 ms retry delay.
    """
    created: List[SerialSession] = []

    def _make(**overrides) -> SerialSession:
        fields = dict(port="PORT-A", read_delay_ms=0, retry_delay_ms=20, log_sink=sink.append)
        fields.update(overrides)
        s = SerialSession(SerialConfig(**fields), driver=driver)
        created.append(s)
        return s

    yield _make

    for s in created:
        s.stop()


def wait_until(predicate: Callable[[], bool], timeout: float = 1.0, interval: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def until():
    return wait_until
