from .session import SerialSession
from .exchange import Exchange
from .signal import StatusSignal, StatusView
from .state import ConnectionStatus

__all__ = ["SerialSession",
           "Exchange",
           "StatusSignal",
           "StatusView",
           "ConnectionStatus"]
