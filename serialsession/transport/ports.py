# serialsession/transport/ports.py
from __future__ import annotations

from serial.tools import list_ports


def list_candidates():
    """Return a list of pyserial port info objects (for error messages/UI)."""
    return list(list_ports.comports())


def list_available_ports() -> list[str]:
    """Return the device identifiers of all serial ports the OS reports."""
    return sorted(p.device for p in list_candidates())


def describe_port(info) -> str:
    """One-line description of a pyserial ListPortInfo."""
    if info.vid is not None and info.pid is not None:
        return (
            f"{info.device} [{info.vid:04X}:{info.pid:04X}] "
            f"{(info.manufacturer or '')} {(info.product or '')} {(info.description or '')}"
        ).strip()
    return f"{info.device} {(info.description or '')}".strip()
