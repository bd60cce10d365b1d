"""
Resilient sessions over a serial port: serialized I/O, failure-triggered
reconnects and an optional background reconnect loop.
"""

from .config import (
    DataBits,
    Parity,
    SerialConfig,
    SerialConfigBuilder,
    StopBits,
    config_from_mapping,
    load_config,
)
from .core.errors import (
    AlreadyConnectedError,
    CloseFailedError,
    ConfigError,
    NotConnectedError,
    OpenFailedError,
    ParamsRejectedError,
    ReadFailedError,
    SerialSessionError,
    WriteFailedError,
)
from .runtime import ConnectionStatus, Exchange, SerialSession, StatusView
from .transport import ChannelDriver, ChannelHandle, UARTDriver, list_available_ports

__version__ = "0.1.0"

__all__ = ["SerialSession",
           "SerialConfig",
           "SerialConfigBuilder",
           "DataBits",
           "StopBits",
           "Parity",
           "load_config",
           "config_from_mapping",
           "Exchange",
           "ConnectionStatus",
           "StatusView",
           "ChannelDriver",
           "ChannelHandle",
           "UARTDriver",
           "list_available_ports",
           "SerialSessionError",
           "ConfigError",
           "AlreadyConnectedError",
           "OpenFailedError",
           "ParamsRejectedError",
           "WriteFailedError",
           "ReadFailedError",
           "CloseFailedError",
           "NotConnectedError"]
