"""PTY handle: the owner of a master descriptor and its child process.

A ``Pty`` is created by the allocator once the child has been forked. From then
on it is the only authority over the master descriptor: every read, write and
ioctl goes through it, and ``close()`` is the only way the descriptor is
released.
"""

from __future__ import annotations

import contextlib
import enum
import errno
import logging
import os
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NoReturn

from ptyexec.backend import SIGKILL, WNOHANG, Backend, select_backend
from ptyexec.errors import PtyCloseError, PtyClosedError, PtyNotAvailableError, PtyStreamError
from ptyexec.process_utils import kill_process_tree
from ptyexec.pty_registry import PtyRegistrySingleton
from ptyexec.streams import PtyInputStream, PtyOutputStream

if TYPE_CHECKING:
    from types import TracebackType

    from ptyexec.window_size import WindowSize

logger = logging.getLogger(__name__)

INVALID_FD = -1
INVALID_PID = -1

__all__ = [
    "INVALID_FD",
    "INVALID_PID",
    "Liveness",
    "Pty",
    "probe_liveness",
]


class Liveness(enum.Enum):
    """Outcome of a non-blocking liveness probe."""

    ALIVE = "alive"
    EXITED = "exited"
    UNKNOWN = "unknown"  # the probe itself failed


def probe_liveness(backend: Backend, pid: int) -> tuple[Liveness, int | None]:
    """Poll ``pid`` without blocking.

    Returns the liveness and, when this call reaped the process, its raw wait
    status. Only meant for best-effort decisions.
    """
    if pid <= 0:
        return Liveness.EXITED, None
    try:
        waited_pid, status = backend.wait_for(pid, WNOHANG)
    except ChildProcessError:
        # Not our child, or somebody else already reaped it.
        return Liveness.EXITED, None
    except OSError as e:
        logger.debug("Liveness probe for pid %s failed: %s", pid, e)
        return Liveness.UNKNOWN, None
    if waited_pid == 0:
        return Liveness.ALIVE, None
    return Liveness.EXITED, status


@dataclass(frozen=True)
class _PtyState:
    fd: int
    pid: int

    @property
    def is_open(self) -> bool:
        return self.fd >= 0


_CLOSED = _PtyState(INVALID_FD, INVALID_PID)


class Pty:
    """An open pseudoterminal master and the child process attached to its slave.

    The descriptor and pid live in a single state cell that only ``close()``
    replaces, so concurrent closers see either the open state or the closed
    one and never a half-cleared mix.
    """

    def __init__(self, fd: int, pid: int, backend: Backend | None = None) -> None:
        self._backend = backend if backend is not None else select_backend()
        self._state = _PtyState(fd, pid)
        self._state_lock = threading.Lock()
        self._exit_status: int | None = None
        self._input_stream: PtyInputStream | None = None
        self._output_stream: PtyOutputStream | None = None

    @classmethod
    def is_available(cls) -> bool:
        """Check if PTY support is available on the current platform."""
        try:
            select_backend()
        except PtyNotAvailableError:
            return False
        return True

    def __repr__(self) -> str:
        state = self._state
        if not state.is_open:
            return "<Pty closed>"
        return f"<Pty fd={state.fd} pid={state.pid}>"

    def __enter__(self) -> Pty:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def fd(self) -> int:
        """The master descriptor, or ``INVALID_FD`` once closed."""
        return self._state.fd

    @property
    def pid(self) -> int:
        """The child's pid, or ``INVALID_PID`` once closed."""
        return self._state.pid

    @property
    def closed(self) -> bool:
        return not self._state.is_open

    def check_state(self) -> int:
        """Return the master descriptor, raising if the PTY has been closed."""
        fd = self._state.fd
        if fd < 0:
            msg = "Invalid file descriptor; PTY already closed"
            raise PtyClosedError(msg)
        return fd

    # Streams

    def get_input_stream(self) -> PtyInputStream:
        """Return the (cached) stream reading what the child writes to its terminal."""
        self.check_state()
        if self._input_stream is None:
            self._input_stream = PtyInputStream(self)
        return self._input_stream

    def get_output_stream(self) -> PtyOutputStream:
        """Return the (cached) stream whose bytes the child reads from its terminal."""
        self.check_state()
        if self._output_stream is None:
            self._output_stream = PtyOutputStream(self)
        return self._output_stream

    input_stream = property(get_input_stream)
    output_stream = property(get_output_stream)

    # Window size

    def get_window_size(self) -> WindowSize:
        fd = self.check_state()
        return self._backend.get_window_size(fd)

    def set_window_size(self, size: WindowSize) -> None:
        if size is None:
            msg = "WindowSize cannot be None"
            raise ValueError(msg)
        fd = self.check_state()
        self._backend.apply_window_size(fd, size)

    # Child process

    def _probe(self, pid: int) -> Liveness:
        liveness, status = probe_liveness(self._backend, pid)
        if status is not None:
            self._exit_status = status
        return liveness

    def is_child_alive(self) -> bool:
        """Best-effort check whether the child is still running.

        A failed probe counts as not alive.
        """
        pid = self._state.pid
        if pid <= 0 or self._exit_status is not None:
            return False
        return self._probe(pid) is Liveness.ALIVE

    def wait_for(self) -> int:
        """Block until the child terminates and return its exit code.

        A child killed by a signal reports the negated signal number. Returns
        -1 straight away when there is no child to wait for (closed PTY).
        """
        pid = self._state.pid
        if pid <= 0:
            return -1
        if self._exit_status is None:
            try:
                _, status = self._backend.wait_for(pid, 0)
            except ChildProcessError:
                logger.debug("Child %s was reaped elsewhere", pid)
                return -1
            else:
                self._exit_status = status
        return os.waitstatus_to_exitcode(self._exit_status)

    def terminate_tree(self) -> None:
        """Kill the child and all of its descendants without closing the PTY."""
        pid = self._state.pid
        if pid > 0 and self._exit_status is None:
            kill_process_tree(pid)

    def signal(self, signal_number: int) -> None:
        """Send ``signal_number`` to the child.

        Raises:
            PtyClosedError: If the PTY has been closed.
            ProcessLookupError: If the child has already been reaped.
        """
        self.check_state()
        pid = self._state.pid
        if pid <= 0 or self._exit_status is not None:
            msg = f"PTY child {pid} has already been reaped"
            raise ProcessLookupError(errno.ESRCH, msg)
        self._backend.signal(pid, signal_number)

    # Close protocol

    def close(self, terminate_child: bool = True) -> None:
        """Close the master descriptor, optionally killing the child first.

        Safe to call repeatedly and from several threads; only the first call
        does anything.

        Raises:
            PtyCloseError: If closing the descriptor fails.
        """
        with self._state_lock:
            state = self._state
            self._state = _CLOSED
        if not state.is_open:
            return

        # Non-blocking first, so a thread stuck in read/write on this fd wakes up.
        with contextlib.suppress(OSError):
            self._backend.set_blocking(state.fd, False)

        # A reaped pid may already belong to another child; never probe or signal it.
        reaped = self._exit_status is not None
        if terminate_child and not reaped and self._probe(state.pid) is Liveness.ALIVE:
            try:
                self._backend.signal(state.pid, SIGKILL)
                logger.debug("Sent SIGKILL to PTY child %s", state.pid)
            except OSError as e:
                logger.warning("Failed to kill PTY child %s: %s", state.pid, e)

        try:
            self._backend.close(state.fd)
        except OSError as e:
            msg = f"Failed to close pseudoterminal fd {state.fd}"
            raise PtyCloseError(e.errno, msg) from e
        finally:
            streams = (self._input_stream, self._output_stream)
            self._input_stream = None
            self._output_stream = None
            for stream in streams:
                _close_silently(stream)
            PtyRegistrySingleton.unregister(self)

        logger.debug("Closed PTY fd %s (child %s)", state.fd, state.pid)

    def close_with_error(self, error_message: str, cause: OSError | None = None) -> NoReturn:
        """Force-close after a stream fault, then raise ``PtyStreamError``."""
        close_error: PtyCloseError | None = None
        try:
            self.close()
        except PtyCloseError as e:
            close_error = e
        if cause is not None and cause.errno is not None:
            raise PtyStreamError(cause.errno, error_message) from (close_error or cause)
        raise PtyStreamError(error_message) from (close_error or cause)


def _close_silently(resource: Any) -> None:
    if resource is not None:
        try:
            resource.close()
        except Exception as e:  # noqa: BLE001
            logger.debug("Ignoring error while closing %r: %s", resource, e)

