"""Platform backends for PTY allocation.

Each supported OS family gets one flat ``Backend`` instance. The instances
share the same small capability set and differ only in configuration: which
master device to open, whether grant/unlock must actually run, and which
STREAMS modules have to be pushed onto a fresh slave.

All operations raise ``OSError`` on failure; the errno is recorded so that
``last_error_code()`` can report it afterwards.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import enum
import functools
import logging
import os
import signal as _signal
import sys
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar, Union

from ptyexec.errors import PtyNotAvailableError, record_error
from ptyexec.terminal_modes import TerminalModes
from ptyexec.window_size import WindowSize

logger = logging.getLogger(__name__)

STDIN_FILENO = 0
STDOUT_FILENO = 1
STDERR_FILENO = 2

# stropts.h
_STR = ord("S") << 8
I_PUSH = _STR | 2

BACKEND_ENV_VAR = "PTYEXEC_BACKEND"

_F = TypeVar("_F", bound=Callable[..., Any])


def _native(func: _F) -> _F:
    """Record the errno of any OSError escaping a backend call."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except OSError as e:
            record_error(e)
            raise

    return wrapper  # type: ignore[return-value]


class BackendKind(enum.Enum):
    """Operating system families with a PTY backend."""

    LINUX = "linux"
    DARWIN = "darwin"
    FREEBSD = "freebsd"
    SOLARIS = "solaris"


@dataclass(frozen=True)
class ParentBranch:
    """Fork result seen by the parent."""

    child_pid: int


@dataclass(frozen=True)
class ChildBranch:
    """Fork result seen by the child.

    Code holding this must end the process, either by replacing the process
    image or with ``os._exit``. It must never return into shared code.
    """


ForkResult = Union[ParentBranch, ChildBranch]


@functools.lru_cache(maxsize=1)
def _libc() -> ctypes.CDLL:
    name = ctypes.util.find_library("c")
    return ctypes.CDLL(name, use_errno=True)


def _libc_check(result: int) -> int:
    if result < 0:
        err = ctypes.get_errno()
        raise OSError(err, os.strerror(err))
    return result


class Backend:
    """Raw PTY and process operations for one OS family."""

    def __init__(
        self,
        kind: BackendKind,
        master_device: str | None = "/dev/ptmx",
        requires_grant: bool = True,
        stream_modules: tuple[str, ...] = (),
    ) -> None:
        self.kind = kind
        self.master_device = master_device
        self.requires_grant = requires_grant
        self.stream_modules = stream_modules

    def __repr__(self) -> str:
        return f"Backend({self.kind.value})"

    # Process image

    @_native
    def replace_process_image(
        self,
        command: str,
        argv: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> None:
        if env is None:
            os.execv(command, list(argv))
        else:
            os.execve(command, list(argv), dict(env))

    @_native
    def fork(self) -> ForkResult:
        pid = os.fork()
        if pid == 0:
            return ChildBranch()
        return ParentBranch(pid)

    # Allocation

    @_native
    def allocate_master(self) -> int:
        flags = os.O_RDWR | os.O_NOCTTY
        if self.master_device is not None:
            return os.open(self.master_device, flags)
        if hasattr(os, "posix_openpt"):
            return os.posix_openpt(flags)
        return _libc_check(_libc().posix_openpt(flags))

    @_native
    def grant_access(self, fd: int) -> None:
        if not self.requires_grant:
            return
        if hasattr(os, "grantpt"):
            os.grantpt(fd)
        else:
            _libc_check(_libc().grantpt(fd))

    @_native
    def unlock(self, fd: int) -> None:
        if not self.requires_grant:
            return
        if hasattr(os, "unlockpt"):
            os.unlockpt(fd)
        else:
            _libc_check(_libc().unlockpt(fd))

    @_native
    def slave_path(self, fd: int) -> str:
        if hasattr(os, "ptsname"):
            return os.ptsname(fd)
        libc = _libc()
        libc.ptsname.restype = ctypes.c_char_p
        name = libc.ptsname(fd)
        if not name:
            err = ctypes.get_errno()
            raise OSError(err, os.strerror(err))
        return os.fsdecode(name)

    @_native
    def open_slave(self, path: str) -> int:
        return os.open(path, os.O_RDWR | os.O_NOCTTY)

    @_native
    def attach_line_discipline(self, fd: int) -> None:
        import fcntl  # noqa: PLC0415

        for module in self.stream_modules:
            fcntl.ioctl(fd, I_PUSH, module.encode("ascii") + b"\0")

    # Terminal configuration

    @_native
    def make_controlling_terminal(self, fd: int) -> None:
        import fcntl  # noqa: PLC0415
        import termios  # noqa: PLC0415

        os.setsid()
        tiocsctty = getattr(termios, "TIOCSCTTY", None)
        if tiocsctty is not None:
            fcntl.ioctl(fd, tiocsctty, 0)

    @_native
    def apply_terminal_modes(self, fd: int, modes: TerminalModes) -> None:
        import termios  # noqa: PLC0415

        termios.tcsetattr(fd, termios.TCSANOW, modes.to_attributes())

    @_native
    def apply_window_size(self, fd: int, size: WindowSize) -> None:
        import fcntl  # noqa: PLC0415
        import termios  # noqa: PLC0415

        fcntl.ioctl(fd, termios.TIOCSWINSZ, size.pack())

    @_native
    def get_window_size(self, fd: int) -> WindowSize:
        import fcntl  # noqa: PLC0415
        import termios  # noqa: PLC0415

        buf = fcntl.ioctl(fd, termios.TIOCGWINSZ, WindowSize(0, 0).pack())
        return WindowSize.unpack(buf)

    @_native
    def duplicate_onto_standard_streams(self, fd: int) -> None:
        for target in (STDIN_FILENO, STDOUT_FILENO, STDERR_FILENO):
            os.dup2(fd, target)
        if fd > STDERR_FILENO:
            os.close(fd)

    # Processes

    @_native
    def wait_for(self, pid: int, options: int = 0) -> tuple[int, int]:
        return os.waitpid(pid, options)

    @_native
    def signal(self, pid: int, signal_number: int) -> None:
        os.kill(pid, signal_number)

    # Descriptors

    @_native
    def close(self, fd: int) -> None:
        os.close(fd)

    @_native
    def set_blocking(self, fd: int, blocking: bool) -> None:
        os.set_blocking(fd, blocking)

    @_native
    def read(self, fd: int, size: int) -> bytes:
        return os.read(fd, size)

    @_native
    def write(self, fd: int, data: bytes | bytearray | memoryview) -> int:
        return os.write(fd, data)

    @_native
    def bytes_available(self, fd: int) -> int:
        import array  # noqa: PLC0415
        import fcntl  # noqa: PLC0415
        import termios  # noqa: PLC0415

        buf = array.array("i", [0])
        fcntl.ioctl(fd, termios.FIONREAD, buf, True)
        return buf[0]

    @_native
    def drain(self, fd: int) -> None:
        import termios  # noqa: PLC0415

        termios.tcdrain(fd)


BACKENDS: dict[BackendKind, Backend] = {
    BackendKind.LINUX: Backend(BackendKind.LINUX),
    BackendKind.DARWIN: Backend(BackendKind.DARWIN),
    # pts(4) grants access when the master is created.
    BackendKind.FREEBSD: Backend(BackendKind.FREEBSD, master_device=None, requires_grant=False),
    BackendKind.SOLARIS: Backend(BackendKind.SOLARIS, stream_modules=("ptem", "ldterm", "ttcompat")),
}


def _kind_for_platform(platform: str) -> BackendKind | None:
    if platform.startswith("linux"):
        return BackendKind.LINUX
    if platform == "darwin":
        return BackendKind.DARWIN
    if platform.startswith("freebsd"):
        return BackendKind.FREEBSD
    if platform.startswith(("sunos", "solaris")):
        return BackendKind.SOLARIS
    return None


@functools.lru_cache(maxsize=1)
def select_backend() -> Backend:
    """Return the backend for the host, resolved once per process.

    Raises:
        PtyNotAvailableError: If the host has no PTY backend.
    """
    forced = os.environ.get(BACKEND_ENV_VAR)
    if forced:
        try:
            kind = BackendKind(forced.lower())
        except ValueError:
            msg = f"{BACKEND_ENV_VAR}={forced!r} does not name a backend"
            raise PtyNotAvailableError(msg) from None
    else:
        found = _kind_for_platform(sys.platform)
        if found is None:
            msg = f"PTY not available on {sys.platform}"
            raise PtyNotAvailableError(msg)
        kind = found
    backend = BACKENDS[kind]
    logger.debug("Selected PTY backend %s", backend)
    return backend


# Host ABI constants, exposed for callers of Pty/Backend.signal and wait_for.
SIGHUP = getattr(_signal, "SIGHUP", 1)
SIGINT = _signal.SIGINT
SIGQUIT = getattr(_signal, "SIGQUIT", 3)
SIGILL = _signal.SIGILL
SIGABRT = _signal.SIGABRT
SIGFPE = _signal.SIGFPE
SIGKILL = getattr(_signal, "SIGKILL", 9)
SIGSEGV = _signal.SIGSEGV
SIGPIPE = getattr(_signal, "SIGPIPE", 13)
SIGALRM = getattr(_signal, "SIGALRM", 14)
SIGTERM = _signal.SIGTERM

WNOHANG = getattr(os, "WNOHANG", 1)
WUNTRACED = getattr(os, "WUNTRACED", 2)
