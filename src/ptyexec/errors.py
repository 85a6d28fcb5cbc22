"""Exception types raised by ptyexec and the per-thread native error record."""

from __future__ import annotations

import threading

_last_error = threading.local()


class PtyError(Exception):
    """Base class for all ptyexec errors."""


class PtyNotAvailableError(PtyError):
    """Raised when PTY functionality is not available on the current platform."""


class PtyAllocationError(PtyError, OSError):
    """Raised when a step of the PTY allocation protocol fails.

    All descriptors opened before the failing step have been closed by the
    time this is raised. ``errno`` holds the native error code.
    """


class PtyClosedError(PtyError, ValueError):
    """Raised when an I/O or ioctl operation is attempted on a closed PTY."""


class PtyStreamError(PtyError, OSError):
    """Raised when a read, write or flush on a PTY stream fails.

    The owning PTY has already been closed when this is raised.
    """


class PtyCloseError(PtyError, OSError):
    """Raised when closing the master descriptor itself fails."""


def record_error(err: OSError) -> None:
    """Remember the errno of a failed native call for the current thread."""
    if err.errno is not None:
        _last_error.code = err.errno


def last_error_code() -> int:
    """Return the errno of the most recent native failure on this thread (0 if none)."""
    return getattr(_last_error, "code", 0)
