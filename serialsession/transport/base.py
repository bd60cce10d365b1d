# serialsession/transport/base.py
from __future__ import annotations

from abc import ABC, abstractmethod

from serialsession.config.settings import DataBits, Parity, StopBits


class ChannelHandle(ABC):
    """
    An opened serial port, as handed out by ChannelDriver.open().

    Contract:
      - set_params() applies framing; raises TransportParamsError if rejected.
      - write_bytes(data) writes all of data or raises TransportIOError.
      - read_bytes() returns whatever the port has pending, possibly after a
        short driver timeout; b"" means nothing arrived.
      - is_open() reflects what the driver last saw; it does not check the line.
      - close() releases the port; raises TransportIOError if the driver fails.
    """

    @abstractmethod
    def set_params(
        self,
        baud_rate: int,
        data_bits: DataBits,
        stop_bits: StopBits,
        parity: Parity,
    ) -> None: ...

    @abstractmethod
    def write_bytes(self, data: bytes) -> int: ...

    @abstractmethod
    def read_bytes(self) -> bytes: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def close(self) -> None: ...

    def write_text(self, text: str, encoding: str = "utf-8") -> int:
        return self.write_bytes(text.encode(encoding))

    def read_text(self, encoding: str = "utf-8") -> str:
        return self.read_bytes().decode(encoding, errors="replace")


class ChannelDriver(ABC):
    """
    Factory for ChannelHandle plus port enumeration.

    open() raises TransportOpenError when the OS refuses the port.
    """

    @abstractmethod
    def open(self, port: str) -> ChannelHandle: ...

    @abstractmethod
    def list_ports(self) -> list[str]: ...
