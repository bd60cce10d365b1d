from __future__ import annotations

import dataclasses

import pytest

from serialsession.config.settings import (
    DataBits,
    Parity,
    SerialConfig,
    StopBits,
    coerce_enum,
)
from serialsession.core.errors import ConfigError
from serialsession.interfaces.log_sink import console_sink


def test_defaults():
    cfg = SerialConfig.builder("/dev/ttyUSB0").build()

    assert cfg.port == "/dev/ttyUSB0"
    assert cfg.baud_rate == 115200
    assert cfg.data_bits is DataBits.EIGHT
    assert cfg.stop_bits is StopBits.ONE
    assert cfg.parity is Parity.NONE
    assert cfg.retry_delay_ms == 3000
    assert cfg.read_delay_ms == 100
    assert cfg.max_failure_count == 3
    assert cfg.auto_reconnect is False
    assert cfg.log_sink is console_sink


def test_builder_is_fluent_and_sets_every_field():
    messages = []
    cfg = (
        SerialConfig.builder("COM3", log_sink=messages.append)
        .baud_rate(9600)
        .data_bits(7)
        .stop_bits(2)
        .parity("even")
        .retry_delay_ms(500)
        .read_delay_ms(20)
        .max_failure_count(5)
        .auto_reconnect()
        .build()
    )

    assert cfg.baud_rate == 9600
    assert cfg.data_bits is DataBits.SEVEN
    assert cfg.stop_bits is StopBits.TWO
    assert cfg.parity is Parity.EVEN
    assert cfg.retry_delay_s == pytest.approx(0.5)
    assert cfg.read_delay_s == pytest.approx(0.02)
    assert cfg.max_failure_count == 5
    assert cfg.auto_reconnect is True

    cfg.log_sink("hello")
    assert messages == ["hello"]


def test_builder_log_sink_method_overrides_constructor_sink():
    first, second = [], []
    cfg = SerialConfig.builder("COM3", log_sink=first.append).log_sink(second.append).build()
    cfg.log_sink("x")
    assert first == [] and second == ["x"]


def test_config_is_frozen():
    cfg = SerialConfig(port="COM1")
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.baud_rate = 9600  # type: ignore[misc]


def test_with_overrides_revalidates():
    cfg = SerialConfig(port="COM1")
    assert cfg.with_overrides(baud_rate=57600).baud_rate == 57600
    with pytest.raises(ConfigError):
        cfg.with_overrides(baud_rate=0)


@pytest.mark.parametrize("port", ["", "   ", None])
def test_missing_port_rejected(port):
    with pytest.raises(ConfigError) as ei:
        SerialConfig(port=port)  # type: ignore[arg-type]
    assert ei.value.code == "config_error"
    assert ei.value.hint


@pytest.mark.parametrize(
    "field,value",
    [
        ("baud_rate", 0),
        ("baud_rate", -9600),
        ("baud_rate", 9600.0),
        ("baud_rate", True),
        ("retry_delay_ms", -1),
        ("read_delay_ms", -1),
        ("max_failure_count", -1),
        ("auto_reconnect", "yes"),
    ],
)
def test_invalid_numbers_rejected(field, value):
    with pytest.raises(ConfigError) as ei:
        SerialConfig(port="COM1", **{field: value})
    assert ei.value.details


def test_zero_delays_and_zero_threshold_are_allowed():
    cfg = SerialConfig(port="COM1", retry_delay_ms=0, read_delay_ms=0, max_failure_count=0)
    assert cfg.retry_delay_ms == 0
    assert cfg.max_failure_count == 0


def test_non_callable_sink_rejected():
    with pytest.raises(ConfigError):
        SerialConfig(port="COM1", log_sink="stdout")  # type: ignore[arg-type]


@pytest.mark.parametrize("value", [4, 9, "8bits"])
def test_bad_data_bits(value):
    with pytest.raises(ConfigError) as ei:
        SerialConfig(port="COM1", data_bits=value)
    assert "5, 6, 7, 8" in ei.value.hint


def test_stop_bits_one_point_five():
    cfg = SerialConfig(port="COM1", stop_bits=1.5)
    assert cfg.stop_bits is StopBits.ONE_POINT_FIVE


def test_stop_bits_rejects_bool():
    with pytest.raises(ConfigError):
        SerialConfig(port="COM1", stop_bits=True)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("none", Parity.NONE),
        ("ODD", Parity.ODD),
        (" mark ", Parity.MARK),
        ("S", Parity.SPACE),
        (Parity.EVEN, Parity.EVEN),
    ],
)
def test_parity_accepts_names_and_values(value, expected):
    assert coerce_enum(Parity, value, "parity") is expected


def test_parity_unknown():
    with pytest.raises(ConfigError) as ei:
        coerce_enum(Parity, "weird", "parity")
    assert ei.value.details == {"field": "parity", "value": "weird"}
