# serialsession/cli/args.py
from __future__ import annotations

import argparse
from typing import Any, Dict, Optional

from serialsession.config.settings import DataBits, Parity, StopBits


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="serialsession")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr.")
    parser.add_argument("--log-file", default=None, help="Also write the debug log to this file.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("ports", help="List serial ports reported by the OS.")

    common = argparse.ArgumentParser(add_help=False)
    add_session_flags(common)

    p_send = sub.add_parser("send", parents=[common], help="Send one request and print the response.")
    p_send.add_argument("data", help="Request payload (text, or hex with --hex).")
    p_send.add_argument(
        "--connect-timeout",
        type=float,
        default=5.0,
        help="With --auto-reconnect: seconds to wait for the port before sending.",
    )

    sub.add_parser("shell", parents=[common], help="Interactive request/response shell (auto-reconnects).")

    return parser


def add_session_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("-p", "--port", default=None, help="Serial port, e.g. /dev/ttyUSB0 or COM3.")
    p.add_argument("--config", default=None, help="YAML config file (flags override its values).")
    p.add_argument("--baud", dest="baud_rate", type=int, default=None)
    p.add_argument("--data-bits", type=int, choices=[int(m) for m in DataBits], default=None)
    p.add_argument("--stop-bits", type=float, choices=[m.value for m in StopBits], default=None)
    p.add_argument("--parity", choices=[m.name.lower() for m in Parity], default=None)
    p.add_argument("--retry-delay-ms", type=int, default=None)
    p.add_argument("--read-delay-ms", type=int, default=None)
    p.add_argument("--max-failures", dest="max_failure_count", type=int, default=None)
    p.add_argument("--auto-reconnect", action="store_true", default=None)
    p.add_argument("--hex", action="store_true", help="Payloads are hex strings; responses print as hex.")


def session_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Config values given on the command line (None = not given)."""
    stop_bits: Optional[float] = getattr(args, "stop_bits", None)
    if stop_bits is not None and stop_bits.is_integer():
        stop_bits = int(stop_bits)

    overrides = {
        "port": getattr(args, "port", None),
        "baud_rate": getattr(args, "baud_rate", None),
        "data_bits": getattr(args, "data_bits", None),
        "stop_bits": stop_bits,
        "parity": getattr(args, "parity", None),
        "retry_delay_ms": getattr(args, "retry_delay_ms", None),
        "read_delay_ms": getattr(args, "read_delay_ms", None),
        "max_failure_count": getattr(args, "max_failure_count", None),
        "auto_reconnect": getattr(args, "auto_reconnect", None),
    }
    return {k: v for k, v in overrides.items() if v is not None}


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
