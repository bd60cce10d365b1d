# serialsession/cli/main.py
from __future__ import annotations

from typing import Optional

from serialsession.core.errors import SerialSessionError

from serialsession.cli.args import parse_args
from serialsession.cli.commands import (
    cmd_ports,
    cmd_send,
    cmd_shell,
    configure_logging,
)


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = parse_args(argv)
        configure_logging(verbose=args.verbose, log_file=args.log_file)

        if args.cmd == "ports":
            return cmd_ports()
        if args.cmd == "send":
            return cmd_send(args)
        if args.cmd == "shell":
            return cmd_shell(args)

        return 2
    except SerialSessionError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
