"""Run a command in a new pseudoterminal."""

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import Mapping, Sequence

from ptyexec.allocator import allocate_pty
from ptyexec.backend import Backend, select_backend
from ptyexec.errors import PtyAllocationError, PtyCloseError
from ptyexec.pty import Pty
from ptyexec.pty_registry import PtyRegistrySingleton
from ptyexec.terminal_modes import TerminalModes
from ptyexec.window_size import WindowSize

logger = logging.getLogger(__name__)

EnvLike = Mapping[str, str] | Sequence[str]


def normalize_argv(command: str, argv: Sequence[str] | None) -> list[str]:
    """Build the argument vector handed to exec.

    ``argv[0]`` is always ``command``: it is prepended when the given
    arguments start with something else.
    """
    if not argv:
        return [command]
    if argv[0] != command:
        return [command, *argv]
    return list(argv)


def normalize_env(env: EnvLike | None) -> dict[str, str] | None:
    """Accept a mapping or a sequence of ``KEY=VALUE`` strings."""
    if env is None:
        return None
    if isinstance(env, Mapping):
        return dict(env)
    result: dict[str, str] = {}
    for entry in env:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            error_message = f"Environment entry must look like KEY=VALUE, got {entry!r}"
            raise ValueError(error_message)
        result[key] = value
    return result


def exec_in_pty(
    command: str | os.PathLike[str],
    argv: Sequence[str] | None = None,
    env: EnvLike | None = None,
    terminal_modes: TerminalModes | None = None,
    window_size: WindowSize | None = None,
    backend: Backend | None = None,
) -> Pty:
    """Open a pseudoterminal pair and run ``command`` on its slave side.

    Args:
        command: Path of the program to run. Not looked up on PATH.
        argv: Optional arguments. ``command`` is prepended unless already first.
        env: Environment for the child; None inherits the caller's environment.
        terminal_modes: Initial slave terminal modes; None uses the defaults.
        window_size: Initial window size of the slave.
        backend: Platform backend; defaults to the host's.

    Returns:
        An open ``Pty`` owning the master descriptor and the child pid.

    Raises:
        ValueError: If ``command`` is empty.
        PtyAllocationError: If opening the pseudoterminal or forking fails.
        PtyNotAvailableError: If the platform has no PTY backend.
    """
    command_str = os.fspath(command) if command is not None else ""
    if not command_str:
        error_message = "Invalid command line: command must not be empty"
        raise ValueError(error_message)

    full_argv = normalize_argv(command_str, argv)
    child_env = normalize_env(env)
    if backend is None:
        backend = select_backend()

    pty = allocate_pty(backend, command_str, full_argv, child_env, terminal_modes, window_size)

    try:
        backend.set_blocking(pty.fd, True)
    except OSError as e:
        with contextlib.suppress(PtyCloseError):
            pty.close()
        error_message = "Failed to set flags for master PTY"
        raise PtyAllocationError(e.errno, error_message) from e

    PtyRegistrySingleton.register(pty)
    logger.debug("exec_in_pty(%s) -> %r", full_argv, pty)
    return pty
