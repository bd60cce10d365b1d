from .base import ChannelDriver, ChannelHandle
from .errors import TransportError, TransportIOError, TransportOpenError, TransportParamsError
from .ports import list_available_ports
from .uart import UARTDriver, UARTHandle

__all__ = ["ChannelDriver",
           "ChannelHandle",
           "UARTDriver",
           "UARTHandle",
           "TransportError",
           "TransportOpenError",
           "TransportParamsError",
           "TransportIOError",
           "list_available_ports"]
