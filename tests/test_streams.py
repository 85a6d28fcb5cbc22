"""Tests for the PTY input and output streams using an in-memory backend."""

from __future__ import annotations

import errno
import unittest

from fake_backend import CHILD_PID, MASTER_FD, FakeBackend

from ptyexec import Pty, PtyClosedError, PtyStreamError
from ptyexec.streams import SCRATCH_BUFFER_SIZE


class _ClosingBackend(FakeBackend):
    """Closes its target PTY while the first write is in flight."""

    target: Pty | None = None

    def write(self, fd: int, data: bytes | bytearray | memoryview) -> int:
        n = super().write(fd, data)
        if self.target is not None:
            self.target.close()
        return n


class TestInputStream(unittest.TestCase):
    """Tests for PtyInputStream."""

    def test_reads_until_end_of_stream(self):
        """read() returns everything up to end of stream."""
        backend = FakeBackend(read_chunks=[b"hel", b"lo\n"])
        pty = Pty(MASTER_FD, CHILD_PID, backend)
        stream = pty.get_input_stream()

        self.assertEqual(stream.read(), b"hello\n")
        self.assertEqual(stream.read(10), b"")
        self.assertFalse(pty.closed)
        pty.close()

    def test_eio_is_end_of_stream(self):
        """EIO reads as end of stream and leaves the PTY open."""
        backend = FakeBackend(read_chunks=[b"bye", OSError(errno.EIO, "Input/output error")])
        pty = Pty(MASTER_FD, CHILD_PID, backend)
        stream = pty.get_input_stream()

        self.assertEqual(stream.read(100), b"bye")
        self.assertEqual(stream.read(100), b"")
        self.assertFalse(pty.closed)
        pty.close()

    def test_read_error_closes_pty(self):
        """Other read errors close the PTY and raise PtyStreamError."""
        backend = FakeBackend(read_chunks=[OSError(errno.EBADF, "Bad file descriptor")])
        pty = Pty(MASTER_FD, CHILD_PID, backend)
        stream = pty.get_input_stream()

        with self.assertRaises(PtyStreamError) as ctx:
            stream.read(10)
        self.assertEqual(ctx.exception.errno, errno.EBADF)
        self.assertTrue(pty.closed)
        self.assertEqual(backend.closed_fds, [MASTER_FD])

    def test_readline(self):
        """readline stops at the first newline."""
        backend = FakeBackend(read_chunks=[b"first\nsecond\n"])
        pty = Pty(MASTER_FD, CHILD_PID, backend)

        self.assertEqual(pty.get_input_stream().readline(), b"first\n")
        pty.close()

    def test_available(self):
        """available() counts pending bytes."""
        backend = FakeBackend(read_chunks=[b"abc", b"de"])
        pty = Pty(MASTER_FD, CHILD_PID, backend)

        self.assertEqual(pty.get_input_stream().available(), 5)
        pty.close()

    def test_available_failure_closes_and_reports_eof(self):
        """A failed query closes the PTY and raises EOFError."""
        backend = FakeBackend(fail_at="bytes_available")
        pty = Pty(MASTER_FD, CHILD_PID, backend)

        with self.assertRaises(EOFError):
            pty.get_input_stream().available()
        self.assertTrue(pty.closed)

    def test_read_after_close_raises_state_error(self):
        """Reading a closed stream raises PtyClosedError."""
        pty = Pty(MASTER_FD, CHILD_PID, FakeBackend(read_chunks=[b"x"]))
        stream = pty.get_input_stream()
        pty.close()

        self.assertTrue(stream.closed)
        with self.assertRaises(PtyClosedError):
            stream.readinto(bytearray(4))


class TestOutputStream(unittest.TestCase):
    """Tests for PtyOutputStream."""

    def test_one_byte_writes_deliver_everything_in_order(self):
        """One-byte partial writes still deliver the whole payload in order."""
        backend = FakeBackend(max_write=1)
        pty = Pty(MASTER_FD, CHILD_PID, backend)
        payload = bytes(i % 251 for i in range(SCRATCH_BUFFER_SIZE * 2 + 123))

        written = pty.get_output_stream().write(payload)

        self.assertEqual(written, len(payload))
        self.assertEqual(bytes(backend.written), payload)
        self.assertEqual(backend.write_calls, len(payload))
        pty.close()

    def test_offset_write_larger_than_scratch_buffer(self):
        """Offset writes larger than the scratch buffer deliver the right slice."""
        backend = FakeBackend(max_write=7)
        pty = Pty(MASTER_FD, CHILD_PID, backend)
        payload = bytes(i % 256 for i in range(SCRATCH_BUFFER_SIZE * 3))
        offset, length = 5, SCRATCH_BUFFER_SIZE * 2 + 17

        written = pty.get_output_stream().write(payload, offset, length)

        self.assertEqual(written, length)
        self.assertEqual(bytes(backend.written), payload[offset : offset + length])
        pty.close()

    def test_chunks_never_exceed_scratch_buffer(self):
        """No single write is larger than the scratch buffer."""
        backend = FakeBackend()
        pty = Pty(MASTER_FD, CHILD_PID, backend)

        pty.get_output_stream().write(b"z" * (SCRATCH_BUFFER_SIZE * 2 + 1))

        sizes = [call[2] for call in backend.calls if call[0] == "write"]
        self.assertEqual(sizes, [SCRATCH_BUFFER_SIZE, SCRATCH_BUFFER_SIZE, 1])
        pty.close()

    def test_invalid_range_rejected(self):
        """Out-of-range offsets and lengths raise ValueError."""
        pty = Pty(MASTER_FD, CHILD_PID, FakeBackend())
        stream = pty.get_output_stream()
        with self.assertRaises(ValueError):
            stream.write(b"abc", 2, 5)
        with self.assertRaises(ValueError):
            stream.write(b"abc", -1)
        pty.close()

    def test_write_stops_when_pty_closed_mid_write(self):
        """A close from another thread ends the write loop before the next chunk."""
        backend = _ClosingBackend(max_write=1)
        pty = Pty(MASTER_FD, CHILD_PID, backend)
        backend.target = pty

        with self.assertRaises(PtyClosedError):
            pty.get_output_stream().write(b"x" * 10)

        self.assertEqual(backend.write_calls, 1)
        self.assertEqual(bytes(backend.written), b"x")
        self.assertTrue(pty.closed)

    def test_write_error_closes_pty(self):
        """A write error closes the PTY and raises PtyStreamError."""
        backend = FakeBackend(fail_at="write")
        pty = Pty(MASTER_FD, CHILD_PID, backend)

        with self.assertRaises(PtyStreamError):
            pty.get_output_stream().write(b"data")
        self.assertTrue(pty.closed)

    def test_flush_drains(self):
        """flush drains the master."""
        backend = FakeBackend()
        pty = Pty(MASTER_FD, CHILD_PID, backend)

        pty.get_output_stream().flush()

        self.assertIn(("drain", MASTER_FD), backend.calls)
        pty.close()

    def test_flush_error_closes_pty(self):
        """A drain error closes the PTY and raises PtyStreamError."""
        backend = FakeBackend(fail_at="drain")
        pty = Pty(MASTER_FD, CHILD_PID, backend)

        with self.assertRaises(PtyStreamError):
            pty.get_output_stream().flush()
        self.assertTrue(pty.closed)


class TestSharedLifecycle(unittest.TestCase):
    """Closing a stream closes its PTY."""

    def test_stream_close_closes_pty(self):
        """Closing one stream closes the PTY and the other stream."""
        backend = FakeBackend()
        pty = Pty(MASTER_FD, CHILD_PID, backend)
        out = pty.get_output_stream()
        inp = pty.get_input_stream()

        out.close()

        self.assertTrue(pty.closed)
        self.assertTrue(inp.closed)
        self.assertEqual(backend.closed_fds, [MASTER_FD])

    def test_stream_as_context_manager(self):
        """Leaving a stream's with block closes the PTY."""
        backend = FakeBackend(read_chunks=[b"ok"])
        pty = Pty(MASTER_FD, CHILD_PID, backend)

        with pty.get_input_stream() as stream:
            self.assertEqual(stream.read(2), b"ok")
        self.assertTrue(pty.closed)


if __name__ == "__main__":
    unittest.main()
