# serialsession/transport/uart.py
from __future__ import annotations

import sys

import serial
from serial import SerialException

from serialsession.config.settings import DataBits, Parity, StopBits
from .base import ChannelDriver, ChannelHandle
from .errors import TransportIOError, TransportOpenError, TransportParamsError
from .ports import list_available_ports


class UARTHandle(ChannelHandle):
    """
    Opened port backed by a pyserial Serial instance.

    read_bytes() waits up to the driver timeout for the first byte, then
    drains whatever else is already buffered.
    """

    def __init__(self, ser: serial.Serial):
        self.ser = ser

    @property
    def port(self) -> str:
        return str(self.ser.port)

    def set_params(
        self,
        baud_rate: int,
        data_bits: DataBits,
        stop_bits: StopBits,
        parity: Parity,
    ) -> None:
        try:
            self.ser.baudrate = int(baud_rate)
            self.ser.bytesize = int(data_bits)
            self.ser.stopbits = stop_bits.value
            self.ser.parity = parity.value
        except (SerialException, ValueError) as e:
            raise TransportParamsError(f"UART params rejected: {e}") from None

    def write_bytes(self, data: bytes) -> int:
        try:
            written = self.ser.write(data)
            self.ser.flush()
        except SerialException as e:
            raise TransportIOError(f"UART write failed: {e}") from None

        if written is not None and written != len(data):
            raise TransportIOError(f"UART short write: {written}/{len(data)} bytes")
        return len(data)

    def read_bytes(self) -> bytes:
        try:
            buf = self.ser.read(1)
            if not buf:
                # timeout reached, nothing pending
                return b""
            pending = self.ser.in_waiting
            if pending:
                buf += self.ser.read(pending)
            return buf
        except SerialException as e:
            raise TransportIOError(f"UART read failed: {e}") from None

    def is_open(self) -> bool:
        return bool(self.ser.is_open)

    def close(self) -> None:
        try:
            self.ser.close()
        except SerialException as e:
            raise TransportIOError(f"UART close failed: {e}") from None


class UARTDriver(ChannelDriver):
    """
    Channel driver implemented via pyserial.

    Ports are opened with exclusive access where the platform supports it, so
    a second process cannot grab the same device.
    """

    def __init__(self, timeout: float = 0.05, exclusive: bool = True):
        self.timeout = timeout
        self.exclusive = exclusive

    def open(self, port: str) -> UARTHandle:
        kwargs = dict(timeout=self.timeout, write_timeout=self.timeout)
        if self.exclusive and sys.platform != "win32":
            # Windows doesn't support this flag.
            kwargs["exclusive"] = True

        try:
            ser = serial.Serial(port, **kwargs)
        except (SerialException, ValueError, OSError) as e:
            raise TransportOpenError(str(e)) from None

        try:
            ser.reset_input_buffer()
            ser.reset_output_buffer()
        except SerialException as e:
            ser.close()
            raise TransportOpenError(f"UART buffer reset failed: {e}") from None

        return UARTHandle(ser)

    def list_ports(self) -> list[str]:
        return list_available_ports()
