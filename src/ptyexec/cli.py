"""Command line runner: execute a program on a pseudoterminal and relay its output.

Usage:
    python -m ptyexec.cli [--rows N] [--cols N] [--env KEY=VALUE ...] command [args...]
"""

from __future__ import annotations

import argparse
import logging
import shutil
import sys

from ptyexec.errors import PtyError
from ptyexec.spawn import exec_in_pty
from ptyexec.window_size import WindowSize

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ptyexec",
        description="Run a command on a new pseudoterminal and copy its output to stdout.",
    )
    parser.add_argument("--rows", type=int, default=None, help="terminal rows (default: current terminal)")
    parser.add_argument("--cols", type=int, default=None, help="terminal columns (default: current terminal)")
    parser.add_argument(
        "--env",
        action="append",
        default=None,
        metavar="KEY=VALUE",
        help="environment entry for the child; repeat for more (default: inherit)",
    )
    parser.add_argument("--input", default=None, help="text to send to the child before reading its output")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("command", nargs="?", help="program to run (absolute path or found on PATH)")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="arguments for the program")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.command is None:
        parser.print_usage()
        return 0

    command = shutil.which(args.command) or args.command
    fallback = shutil.get_terminal_size()
    size = WindowSize(rows=args.rows or fallback.lines, cols=args.cols or fallback.columns)

    try:
        pty = exec_in_pty(command, [command, *args.args], env=args.env, window_size=size)
    except (PtyError, ValueError) as e:
        print(f"ptyexec: {e}", file=sys.stderr)
        return 1

    with pty:
        if args.input is not None:
            out = pty.get_output_stream()
            out.write(args.input.encode())
            out.flush()

        stream = pty.get_input_stream()
        while True:
            chunk = stream.read(4096)
            if not chunk:
                break
            sys.stdout.buffer.write(chunk)
            sys.stdout.buffer.flush()

        exit_code = pty.wait_for()
        logger.debug("Child exited with %s", exit_code)

    return exit_code if exit_code >= 0 else 128 - exit_code


if __name__ == "__main__":
    sys.exit(main())
