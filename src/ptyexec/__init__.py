"""Run programs on pseudoterminals and talk to them through byte streams."""

from __future__ import annotations

__version__ = "1.0.0"

from ptyexec.backend import (
    SIGABRT,
    SIGALRM,
    SIGFPE,
    SIGHUP,
    SIGILL,
    SIGINT,
    SIGKILL,
    SIGPIPE,
    SIGQUIT,
    SIGSEGV,
    SIGTERM,
    WNOHANG,
    WUNTRACED,
    Backend,
    BackendKind,
    select_backend,
)
from ptyexec.errors import (
    PtyAllocationError,
    PtyCloseError,
    PtyClosedError,
    PtyError,
    PtyNotAvailableError,
    PtyStreamError,
    last_error_code,
)
from ptyexec.pty import Liveness, Pty
from ptyexec.pty_registry import PtyRegistry, PtyRegistrySingleton
from ptyexec.spawn import exec_in_pty
from ptyexec.streams import PtyInputStream, PtyOutputStream
from ptyexec.terminal_modes import ControlChar, TerminalModes, default_terminal_modes
from ptyexec.window_size import WindowSize

__all__ = [
    "SIGABRT",
    "SIGALRM",
    "SIGFPE",
    "SIGHUP",
    "SIGILL",
    "SIGINT",
    "SIGKILL",
    "SIGPIPE",
    "SIGQUIT",
    "SIGSEGV",
    "SIGTERM",
    "WNOHANG",
    "WUNTRACED",
    "Backend",
    "BackendKind",
    "ControlChar",
    "Liveness",
    "Pty",
    "PtyAllocationError",
    "PtyCloseError",
    "PtyClosedError",
    "PtyError",
    "PtyInputStream",
    "PtyNotAvailableError",
    "PtyOutputStream",
    "PtyRegistry",
    "PtyRegistrySingleton",
    "PtyStreamError",
    "TerminalModes",
    "WindowSize",
    "default_terminal_modes",
    "exec_in_pty",
    "last_error_code",
    "select_backend",
]
