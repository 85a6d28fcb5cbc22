"""PTY allocation: open a master/slave pair, fork, and exec the child on the slave.

Each step either succeeds or leaves no descriptor behind. The child side of
the fork never returns: it replaces its process image or exits.
"""

from __future__ import annotations

import contextlib
import errno
import logging
import os
from collections.abc import Mapping, Sequence
from typing import NoReturn

from ptyexec.backend import STDERR_FILENO, Backend, ChildBranch
from ptyexec.errors import PtyAllocationError, record_error
from ptyexec.pty import Pty
from ptyexec.terminal_modes import TerminalModes, default_terminal_modes
from ptyexec.window_size import WindowSize

logger = logging.getLogger(__name__)

# Exit code of a child that could not exec, as shells report "command not found".
EXEC_FAILURE_EXIT_CODE = 127


def _close_quietly(backend: Backend, *fds: int) -> None:
    for fd in fds:
        try:
            backend.close(fd)
        except OSError as e:
            logger.warning("Failed to close fd %s during PTY cleanup: %s", fd, e)


def _allocation_error(description: str, cause: OSError) -> PtyAllocationError:
    error_message = f"Failed to {description}"
    if cause.errno is None:
        return PtyAllocationError(error_message)
    return PtyAllocationError(cause.errno, f"{error_message}: {cause.strerror or cause}")


def allocate_pty(
    backend: Backend,
    command: str,
    argv: Sequence[str],
    env: Mapping[str, str] | None = None,
    terminal_modes: TerminalModes | None = None,
    window_size: WindowSize | None = None,
) -> Pty:
    """Run ``command`` on the slave side of a new PTY and return the master's handle.

    Args:
        backend: Platform operations to use.
        command: Path of the program to execute.
        argv: Full argument vector, ``argv[0]`` included.
        env: Environment for the child; None inherits the caller's.
        terminal_modes: Slave terminal modes; None uses ``default_terminal_modes()``.
        window_size: Initial window size; None leaves the slave's default.

    Raises:
        PtyAllocationError: If any step fails. Descriptors opened so far are closed.
    """
    try:
        master_fd = backend.allocate_master()
    except OSError as e:
        raise _allocation_error("open PTY master", e) from e

    try:
        backend.grant_access(master_fd)
        backend.unlock(master_fd)
        slave_path = backend.slave_path(master_fd)
        if not slave_path:
            err = OSError(errno.ENOTTY, "no slave device name for PTY master")
            record_error(err)
            raise err
        slave_fd = backend.open_slave(slave_path)
    except OSError as e:
        _close_quietly(backend, master_fd)
        raise _allocation_error("prepare PTY slave", e) from e

    try:
        backend.attach_line_discipline(slave_fd)
    except OSError as e:
        _close_quietly(backend, slave_fd, master_fd)
        raise _allocation_error("push line discipline modules", e) from e

    try:
        branch = backend.fork()
    except OSError as e:
        _close_quietly(backend, slave_fd, master_fd)
        raise _allocation_error("fork PTY child", e) from e

    if isinstance(branch, ChildBranch):
        _exec_child(backend, master_fd, slave_fd, command, argv, env, terminal_modes, window_size)

    _close_quietly(backend, slave_fd)
    logger.debug("Started %s (pid %s) on %s, master fd %s", command, branch.child_pid, slave_path, master_fd)
    return Pty(master_fd, branch.child_pid, backend)


def _exec_child(
    backend: Backend,
    master_fd: int,
    slave_fd: int,
    command: str,
    argv: Sequence[str],
    env: Mapping[str, str] | None,
    terminal_modes: TerminalModes | None,
    window_size: WindowSize | None,
) -> NoReturn:
    """Configure the slave as the child's terminal and exec ``command``.

    Runs in the forked child only. Logging is not used here: its locks may
    have been held by another thread at fork time.
    """
    try:
        backend.make_controlling_terminal(slave_fd)
        modes = terminal_modes if terminal_modes is not None else default_terminal_modes()
        backend.apply_terminal_modes(slave_fd, modes)
        if window_size is not None:
            backend.apply_window_size(slave_fd, window_size)
        backend.duplicate_onto_standard_streams(slave_fd)
        backend.close(master_fd)
        backend.replace_process_image(command, argv, env)
    except Exception as e:  # noqa: BLE001
        message = f"ptyexec: cannot execute {command}: {e}\n"
        with contextlib.suppress(OSError):
            os.write(STDERR_FILENO, message.encode("utf-8", errors="replace"))
    finally:
        os._exit(EXEC_FAILURE_EXIT_CODE)
