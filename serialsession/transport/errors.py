# serialsession/transport/errors.py
from __future__ import annotations

class TransportError(Exception):
    """Base class for driver-level failures."""

class TransportOpenError(TransportError):
    pass

class TransportParamsError(TransportError):
    pass

class TransportIOError(TransportError):
    pass
