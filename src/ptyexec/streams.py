"""Byte streams over a PTY master descriptor.

Both streams borrow the descriptor from their ``Pty`` and share its lifecycle:
closing a stream closes the PTY, and a stream reports itself closed as soon
as its PTY is.
"""

from __future__ import annotations

import contextlib
import errno
import io
from typing import TYPE_CHECKING, Any

from ptyexec.errors import PtyCloseError

if TYPE_CHECKING:
    from ptyexec.pty import Pty

SCRATCH_BUFFER_SIZE = 2048


class _PtyStream(io.RawIOBase):
    def __init__(self, pty: Pty) -> None:
        super().__init__()
        self._pty = pty

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._pty!r}>"

    @property
    def closed(self) -> bool:  # type: ignore[override]
        return self._pty.closed

    def fileno(self) -> int:
        return self._pty.check_state()

    def close(self) -> None:
        """Close the owning PTY."""
        self._pty.close()


class PtyInputStream(_PtyStream):
    """Reads the bytes the child writes to its terminal."""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        """Read into ``buffer`` and return the byte count; 0 means end of stream.

        The descriptor is blocking, so 0 only happens once the slave side has
        gone away. Linux reports that as ``EIO``, which is treated the same.
        """
        fd = self._pty.check_state()
        view = memoryview(buffer).cast("B")
        try:
            data = self._pty.backend.read(fd, len(view))
        except OSError as e:
            if e.errno == errno.EIO:
                return 0
            self._pty.close_with_error(f"I/O read failed with errno #{e.errno}", e)
        n = len(data)
        view[:n] = data
        return n

    def available(self) -> int:
        """Return the number of bytes that can be read without blocking.

        Raises:
            EOFError: If the query fails; the PTY is closed first.
        """
        fd = self._pty.check_state()
        try:
            return self._pty.backend.bytes_available(fd)
        except OSError as e:
            with contextlib.suppress(PtyCloseError):
                self._pty.close()
            error_message = f"Failed to query pending bytes: {e}"
            raise EOFError(error_message) from e


class PtyOutputStream(_PtyStream):
    """Writes bytes the child reads from its terminal."""

    def __init__(self, pty: Pty) -> None:
        super().__init__(pty)
        self._buffer = bytearray(SCRATCH_BUFFER_SIZE)

    def writable(self) -> bool:
        return True

    def write(self, buffer: Any, offset: int = 0, length: int | None = None) -> int:  # type: ignore[override]
        """Write ``length`` bytes of ``buffer`` starting at ``offset``.

        Keeps writing until everything is sent; short writes from the
        descriptor are expected. Returns the number of bytes written.
        """
        self._pty.check_state()
        data = memoryview(buffer).cast("B")
        if length is None:
            length = len(data) - offset
        if offset < 0 or length < 0 or offset + length > len(data):
            error_message = f"offset={offset} length={length} out of range for buffer of {len(data)} bytes"
            raise ValueError(error_message)

        remaining = length
        while remaining > 0:
            # Re-checked each pass; another thread may close the PTY mid-write.
            fd = self._pty.check_state()
            n = min(remaining, len(self._buffer))
            if offset > 0:
                self._buffer[:n] = data[offset : offset + n]
                chunk = memoryview(self._buffer)[:n]
            else:
                chunk = data[:n]
            try:
                written = self._pty.backend.write(fd, chunk)
            except OSError as e:
                self._pty.close_with_error(f"I/O write failed with errno #{e.errno}", e)
            remaining -= written
            offset += written
        return length

    def flush(self) -> None:
        """Block until everything written has been transmitted to the slave."""
        fd = self._pty.check_state()
        try:
            self._pty.backend.drain(fd)
        except OSError as e:
            self._pty.close_with_error(f"I/O flush failed with errno #{e.errno}", e)
