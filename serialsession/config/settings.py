# serialsession/config/settings.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Optional, Type, TypeVar

from serialsession.core.errors import ConfigError
from serialsession.interfaces.log_sink import LogSink, console_sink


class DataBits(IntEnum):
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8


class StopBits(Enum):
    ONE = 1
    ONE_POINT_FIVE = 1.5
    TWO = 2


class Parity(Enum):
    # values match pyserial's PARITY_* constants
    NONE = "N"
    EVEN = "E"
    ODD = "O"
    MARK = "M"
    SPACE = "S"


DEFAULT_BAUD_RATE = 115200
DEFAULT_RETRY_DELAY_MS = 3000
DEFAULT_READ_DELAY_MS = 100
DEFAULT_MAX_FAILURE_COUNT = 3

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class SerialConfig:
    """
    Immutable session configuration.

    Validated on construction; a SerialConfig that exists is a usable one.
    Build it with SerialConfig.builder(port) or directly with keyword args.
    """
    port: str
    baud_rate: int = DEFAULT_BAUD_RATE
    data_bits: DataBits = DataBits.EIGHT
    stop_bits: StopBits = StopBits.ONE
    parity: Parity = Parity.NONE
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    read_delay_ms: int = DEFAULT_READ_DELAY_MS
    max_failure_count: int = DEFAULT_MAX_FAILURE_COUNT
    auto_reconnect: bool = False
    log_sink: LogSink = field(default=console_sink, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.port, str) or not self.port.strip():
            raise ConfigError(
                "Port identifier is required.",
                hint="Pass a device path such as /dev/ttyUSB0 or COM3.",
                details={"port": self.port},
            )

        _require_int("baud_rate", self.baud_rate, minimum=1)
        _require_int("retry_delay_ms", self.retry_delay_ms, minimum=0)
        _require_int("read_delay_ms", self.read_delay_ms, minimum=0)
        _require_int("max_failure_count", self.max_failure_count, minimum=0)

        if not isinstance(self.auto_reconnect, bool):
            raise ConfigError(
                "auto_reconnect must be a bool.",
                details={"auto_reconnect": self.auto_reconnect},
            )
        if not callable(self.log_sink):
            raise ConfigError("log_sink must be callable.", details={"log_sink": repr(self.log_sink)})

        # frozen: normalise enum fields in place
        object.__setattr__(self, "data_bits", coerce_enum(DataBits, self.data_bits, "data_bits"))
        object.__setattr__(self, "stop_bits", coerce_enum(StopBits, self.stop_bits, "stop_bits"))
        object.__setattr__(self, "parity", coerce_enum(Parity, self.parity, "parity"))

    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay_ms / 1000.0

    @property
    def read_delay_s(self) -> float:
        return self.read_delay_ms / 1000.0

    @classmethod
    def builder(cls, port: str, log_sink: Optional[LogSink] = None) -> "SerialConfigBuilder":
        return SerialConfigBuilder(port, log_sink=log_sink)

    def with_overrides(self, **overrides: Any) -> "SerialConfig":
        """Copy with some fields replaced (re-validated)."""
        return replace(self, **overrides)


class SerialConfigBuilder:
    """
    Fluent builder for SerialConfig.

        cfg = (
            SerialConfig.builder("/dev/ttyUSB0")
            .baud_rate(9600)
            .parity(Parity.EVEN)
            .auto_reconnect()
            .build()
        )

    Nothing is validated until build().
    """

    def __init__(self, port: str, *, log_sink: Optional[LogSink] = None):
        self._fields: dict[str, Any] = {"port": port}
        if log_sink is not None:
            self._fields["log_sink"] = log_sink

    def baud_rate(self, value: int) -> "SerialConfigBuilder":
        return self._set("baud_rate", value)

    def data_bits(self, value: DataBits | int) -> "SerialConfigBuilder":
        return self._set("data_bits", value)

    def stop_bits(self, value: StopBits | float) -> "SerialConfigBuilder":
        return self._set("stop_bits", value)

    def parity(self, value: Parity | str) -> "SerialConfigBuilder":
        return self._set("parity", value)

    def retry_delay_ms(self, value: int) -> "SerialConfigBuilder":
        return self._set("retry_delay_ms", value)

    def read_delay_ms(self, value: int) -> "SerialConfigBuilder":
        return self._set("read_delay_ms", value)

    def max_failure_count(self, value: int) -> "SerialConfigBuilder":
        return self._set("max_failure_count", value)

    def auto_reconnect(self, enabled: bool = True) -> "SerialConfigBuilder":
        return self._set("auto_reconnect", enabled)

    def log_sink(self, sink: LogSink) -> "SerialConfigBuilder":
        return self._set("log_sink", sink)

    def build(self) -> SerialConfig:
        return SerialConfig(**self._fields)

    def _set(self, name: str, value: Any) -> "SerialConfigBuilder":
        self._fields[name] = value
        return self


def coerce_enum(enum_cls: Type[E], value: Any, name: str) -> E:
    """
    Accept an enum member, its value (8, 1.5, "E") or its name ("even", "ONE").
    """
    if isinstance(value, enum_cls):
        return value

    # bool is an int; True would silently map to StopBits.ONE
    if not isinstance(value, bool):
        try:
            return enum_cls(value)
        except ValueError:
            pass

        if isinstance(value, str):
            key = value.strip().upper()
            if key in enum_cls.__members__:
                return enum_cls.__members__[key]

    valid = ", ".join(str(m.value) for m in enum_cls)
    raise ConfigError(
        f"Invalid value for {name}: {value!r}.",
        hint=f"Valid values: {valid}",
        details={"field": name, "value": value},
    ) from None


def _require_int(name: str, value: Any, *, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(
            f"{name} must be an int, got {type(value).__name__}.",
            details={"field": name, "value": value},
        )
    if value < minimum:
        raise ConfigError(
            f"{name} must be >= {minimum}, got {value}.",
            details={"field": name, "value": value},
        )
