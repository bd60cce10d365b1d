# serialsession/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from serialsession.transport.base import ChannelHandle
from .failures import FailureTracker
from .signal import StatusSignal


@dataclass
class ConnectionState:
    """
    Mutable connection state, owned by ConnectionManager.

    handle, connected and failures move together and are only touched while
    the session lock is held. `connected` is the exception for readers: its
    value may be read from any thread.
    """
    failures: FailureTracker
    handle: Optional[ChannelHandle] = None
    connected: StatusSignal = field(default_factory=StatusSignal)
    last_error: Optional[str] = None


@dataclass(frozen=True)
class ConnectionStatus:
    """
    A snapshot of the session state, safe to share across threads.
    """
    port: str
    connected: bool
    failures: int
    max_failures: int
    auto_reconnect: bool
    stopped: bool
    last_error: Optional[str] = None
