# serialsession/core/errors.py
from __future__ import annotations


class SerialSessionError(Exception):
    """
    Base class for all expected operational errors in a serial session.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, log filtering, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration errors (no hardware access yet)
# ---------------------------------------------------------------------------

class ConfigError(SerialSessionError):
    """
    Session configuration is invalid.

    Examples:
      - missing / empty port identifier
      - non-positive baud rate
      - unsupported data bits / stop bits / parity
      - negative delays or failure threshold
      - unknown key in a YAML config file
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Connection lifecycle errors
# ---------------------------------------------------------------------------

class AlreadyConnectedError(SerialSessionError):
    """
    connect() was called while the session already holds an open handle.
    """
    code = "already_connected"


class OpenFailedError(SerialSessionError):
    """
    The driver refused to open the port.

    Examples:
      - port not found
      - permission denied
      - port already in use by another process
    """
    code = "open_failed"


class ParamsRejectedError(SerialSessionError):
    """
    The port was opened but the framing parameters were rejected.

    Examples:
      - baud rate not supported by the adapter
      - 1.5 stop bits with a data width the UART cannot do
    """
    code = "params_rejected"


class CloseFailedError(SerialSessionError):
    """
    Closing the handle failed. Non-fatal: logged, never propagated.
    """
    code = "close_failed"


class NotConnectedError(SerialSessionError):
    """
    An operation needed a handle but none could be established.
    """
    code = "not_connected"


# ---------------------------------------------------------------------------
# I/O errors
# ---------------------------------------------------------------------------

class WriteFailedError(SerialSessionError):
    """
    A write to the port failed at driver level.
    """
    code = "write_failed"


class ReadFailedError(SerialSessionError):
    """
    A read from the port failed, or returned no data.
    """
    code = "read_failed"
