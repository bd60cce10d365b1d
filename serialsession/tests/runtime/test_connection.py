from __future__ import annotations

import logging
import threading

import pytest

from serialsession.config.settings import Parity, SerialConfig
from serialsession.core.errors import AlreadyConnectedError, NotConnectedError, WriteFailedError
from serialsession.interfaces.log_sink import SessionLogger
from serialsession.runtime.connection import ConnectionManager
from serialsession.runtime.failures import FailureTracker
from serialsession.runtime.state import ConnectionState


@pytest.fixture
def make_manager(driver, sink):
    def _make(**overrides):
        fields = dict(port="PORT-B", max_failure_count=2, log_sink=sink.append)
        fields.update(overrides)
        cfg = SerialConfig(**fields)
        state = ConnectionState(failures=FailureTracker(cfg.max_failure_count))
        events = SessionLogger(logging.getLogger("test.connection"), cfg.log_sink)
        m = ConnectionManager(cfg, driver, lock=threading.RLock(), state=state, events=events)
        return m, state

    return _make


def test_connect_installs_handle_and_applies_params(make_manager, driver, sink):
    m, state = make_manager(baud_rate=9600, parity="even")

    assert m.connect() is True

    assert state.handle is driver.handle
    assert state.connected.value is True
    assert driver.handle.params[0] == 9600
    assert driver.handle.params[3] is Parity.EVEN
    assert sink[-1] == "Connected to PORT-B."


def test_connect_twice_raises_already_connected(make_manager, driver):
    m, _ = make_manager()
    m.connect()

    with pytest.raises(AlreadyConnectedError):
        m.connect()
    assert driver.opens == 1


def test_connect_open_failure_returns_false(make_manager, driver, sink):
    m, state = make_manager()
    driver.open_failures = 1

    assert m.connect() is False

    assert state.handle is None
    assert state.connected.value is False
    assert "Failed to open port: PORT-B" in state.last_error
    assert any("Failed to connect to PORT-B" in line for line in sink)


def test_rejected_params_close_the_port(make_manager, driver, sink):
    m, state = make_manager()
    driver.reject_params = True

    assert m.connect() is False

    assert driver.opens == 1
    assert driver.closes == 1
    assert state.handle is None
    assert state.last_error == "Failed to set port parameters."
    assert any("baud rate not supported" in line for line in sink)


def test_stale_handle_is_released_before_reconnect(make_manager, driver):
    m, state = make_manager()
    m.connect()
    first = driver.handle
    first.opened = False

    assert m.connect() is True

    assert driver.opens == 2
    assert driver.closes == 1
    assert state.handle is not first


def test_disconnect_is_clean_even_if_close_fails(make_manager, driver, sink):
    m, state = make_manager()
    m.connect()
    state.failures.record()
    driver.close_error = True

    m.disconnect()

    assert state.handle is None
    assert state.failures.count == 0
    assert state.connected.value is False
    assert any("Failed to close port PORT-B" in line for line in sink)


def test_disconnect_without_handle_is_quiet(make_manager, sink):
    m, _ = make_manager()
    m.disconnect()
    assert sink == []


def test_ensure_connected_connects_when_no_handle(make_manager, driver):
    m, _ = make_manager()
    assert m.ensure_connected() is True
    assert driver.opens == 1

    # healthy handle: no reset
    assert m.ensure_connected() is True
    assert driver.opens == 1


def test_ensure_connected_resets_at_threshold(make_manager, driver, sink):
    m, state = make_manager()
    m.connect()
    err = WriteFailedError("Failed to write to PORT-B")

    assert m.record_failure(err) == 1
    assert m.ensure_connected() is True
    assert driver.opens == 1

    assert m.record_failure(err) == 2
    assert any("Maximum failure count reached" in line for line in sink)

    assert m.ensure_connected() is True
    assert driver.opens == 2
    assert driver.closes == 1
    assert state.failures.count == 0


def test_ensure_connected_reopens_closed_handle(make_manager, driver, sink):
    m, _ = make_manager()
    m.connect()
    driver.handle.opened = False

    assert m.ensure_connected() is True
    assert driver.opens == 2
    assert any("handle closed" in line for line in sink)


def test_acquire_handle_raises_when_port_is_missing(make_manager, driver):
    m, _ = make_manager()
    driver.open_failures = 5

    with pytest.raises(NotConnectedError) as ei:
        m.acquire_handle()
    assert ei.value.hint == "Failed to open port: PORT-B"


def test_connect_if_down(make_manager, driver):
    m, _ = make_manager()
    assert m.connect_if_down() is True
    assert driver.opens == 1
    assert m.connect_if_down() is False
    assert driver.opens == 1


def test_shutdown_refuses_further_connects(make_manager, driver):
    m, state = make_manager()
    m.connect()

    m.shutdown()

    assert m.closed is True
    assert state.handle is None
    assert driver.closes == 1
    assert m.connect() is False
    assert m.ensure_connected() is False
    assert m.connect_if_down() is False
    assert driver.opens == 1


def test_already_connected_leaves_state_untouched(make_manager, driver):
    m, state = make_manager()
    m.connect()
    handle = state.handle
    m.record_failure(WriteFailedError("Failed to write to PORT-B"))

    with pytest.raises(AlreadyConnectedError):
        m.connect()

    assert state.handle is handle
    assert state.failures.count == 1
    assert state.connected.value is True
    assert driver.opens == 1
    assert driver.closes == 0


def test_status_delivered_after_lock_release(make_manager):
    m, state = make_manager()
    free = []

    def try_lock():
        got = m._lock.acquire(timeout=0.2)
        if got:
            m._lock.release()
        free.append(got)

    def on_change(up):
        t = threading.Thread(target=try_lock)
        t.start()
        t.join()

    state.connected.subscribe(on_change)
    m.connect()
    m.disconnect()

    assert free == [True, True]
