# serialsession/interfaces/log_sink.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

LogSink = Callable[[str], None]  # receives one human-readable line


def console_sink(message: str) -> None:
    """Default sink: print the line to stdout."""
    print(message, flush=True)


@dataclass
class SessionLogger:
    """
    Fans one session event out to two places:

      - the stdlib logger, as an upper-case event code plus key=value fields
      - the user-facing sink, as a plain sentence

    A sink that raises is reported on the logger and otherwise ignored.
    """
    logger: logging.Logger
    sink: LogSink = console_sink

    def info(self, event: str, message: str, **fields: object) -> None:
        self._emit(logging.INFO, event, message, fields)

    def warning(self, event: str, message: str, **fields: object) -> None:
        self._emit(logging.WARNING, event, message, fields)

    def debug(self, event: str, message: str, **fields: object) -> None:
        # debug events stay off the sink
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("%s%s", event, _format_fields(fields))

    def _emit(self, level: int, event: str, message: str, fields: dict) -> None:
        self.logger.log(level, "%s%s", event, _format_fields(fields))
        try:
            self.sink(message)
        except Exception:
            self.logger.exception("LOG_SINK_ERROR event=%s", event)


def _format_fields(fields: dict) -> str:
    if not fields:
        return ""
    return " " + " ".join(f"{k}={v}" for k, v in fields.items())
