# serialsession/cli/commands.py
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Callable, List, Optional, Union

from serialsession.config.loader import config_from_mapping, load_config
from serialsession.config.settings import SerialConfig
from serialsession.core.errors import ConfigError
from serialsession.runtime.exchange import Exchange
from serialsession.runtime.session import SerialSession
from serialsession.runtime.state import ConnectionStatus
from serialsession.transport.ports import describe_port, list_candidates

from serialsession.cli.args import session_overrides

SessionFactory = Callable[[SerialConfig], SerialSession]


# ---------------- Logging ----------------

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(*, verbose: bool, log_file: Optional[str] = None) -> None:
    """
    stderr handler for -v, file handler for --log-file (idempotent).
    Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()
    if verbose and not any(type(h) is logging.StreamHandler for h in root.handlers):
        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(logging.DEBUG)
        sh.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(sh)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        target = os.path.abspath(path)
        if not any(
            isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target
            for h in root.handlers
        ):
            fh = logging.FileHandler(path, encoding="utf-8", delay=True)
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(fh)

    if (verbose or log_file) and root.level > logging.DEBUG:
        root.setLevel(logging.DEBUG)


def stderr_sink(message: str) -> None:
    print(f"[log] {message}", file=sys.stderr, flush=True)


# ---------------- Config / payload helpers ----------------

def build_config(args: argparse.Namespace, **forced) -> SerialConfig:
    overrides = session_overrides(args)
    overrides.update(forced)

    if getattr(args, "config", None):
        return load_config(args.config, log_sink=stderr_sink, overrides=overrides)
    return config_from_mapping(overrides, log_sink=stderr_sink)


def parse_payload(text: str, *, as_hex: bool) -> Union[bytes, str]:
    if not as_hex:
        return text
    try:
        return bytes.fromhex(text)
    except ValueError:
        raise ConfigError(
            f"Invalid hex payload: {text!r}",
            hint="Use pairs of hex digits, spaces allowed (e.g. '01 a0 ff').",
        ) from None


def format_payload(data: Union[bytes, str]) -> str:
    if isinstance(data, str):
        return data.rstrip("\r\n")
    return data.hex(" ")


# ---------------- Status printing ----------------

def print_status(st: ConnectionStatus) -> None:
    print(f"Port:      {st.port}")
    print(f"Connected: {st.connected}")
    print(f"Failures:  {st.failures}/{st.max_failures}")
    print(f"Auto:      {st.auto_reconnect}")
    if st.stopped:
        print("Stopped:   True")
    if st.last_error:
        print(f"Last err:  {st.last_error}")


def print_exchange(ex: Exchange) -> None:
    req = format_payload(ex.request)
    if ex.ok:
        assert ex.response is not None
        print(f"REQUEST  {req}")
        print(f"RESPONSE {format_payload(ex.response)}  ({ex.elapsed_s * 1000:.0f} ms)")
    else:
        reason = ex.error.message if ex.error else "no response"
        print(f"REQUEST  {req}")
        print(f"RESPONSE -  ({reason})")


# ---------------- Commands ----------------

def cmd_ports() -> int:
    ports = list_candidates()
    if not ports:
        print("(no serial ports found)")
        return 0
    for p in sorted(ports, key=lambda info: info.device):
        print(f"- {describe_port(p)}")
    return 0


def cmd_send(
    args: argparse.Namespace,
    *,
    session_factory: SessionFactory = SerialSession,
) -> int:
    cfg = build_config(args)
    payload = parse_payload(args.data, as_hex=args.hex)

    with session_factory(cfg) as session:
        if cfg.auto_reconnect and not session.connection_status.wait_for(True, timeout=args.connect_timeout):
            print(f"Port {cfg.port} did not come up within {args.connect_timeout}s.")
            return 1

        ex = session.exchange(payload)

    if not ex.ok:
        print_exchange(ex)
        return 1

    assert ex.response is not None
    print(format_payload(ex.response))
    return 0


def cmd_shell(
    args: argparse.Namespace,
    *,
    session_factory: SessionFactory = SerialSession,
    input_fn: Callable[[str], str] = input,
) -> int:
    cfg = build_config(args, auto_reconnect=True)
    session = session_factory(cfg)
    history: List[Exchange] = []

    def _on_status(up: bool) -> None:
        print(f"[status] {cfg.port} {'connected' if up else 'disconnected'}")

    unsubscribe = session.connection_status.subscribe(_on_status)
    session.start()

    print(f"Shell on {cfg.port}. Commands: :status  :history  :ports  :quit")
    try:
        while True:
            try:
                line = input_fn("> ")
            except EOFError:
                break

            line = line.strip()
            if not line:
                continue
            if line in (":quit", ":q"):
                break
            if line == ":status":
                print_status(session.status())
                continue
            if line == ":history":
                for ex in history:
                    print_exchange(ex)
                continue
            if line == ":ports":
                for name in session.list_available_ports():
                    print(f"- {name}")
                continue

            try:
                payload = parse_payload(line, as_hex=args.hex)
            except ConfigError as e:
                print(f"ERROR: {e.message}")
                continue

            ex = session.exchange(payload)
            history.append(ex)
            print_exchange(ex)
    except KeyboardInterrupt:
        pass
    finally:
        unsubscribe()
        session.stop()

    print(f"{len(history)} exchange(s), {sum(1 for ex in history if ex.ok)} answered.")
    return 0
