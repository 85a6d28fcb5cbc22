"""Registry of open PTYs for diagnostics and shutdown cleanup."""

from __future__ import annotations

import contextlib
import threading
import warnings
from typing import TYPE_CHECKING

from ptyexec.errors import PtyCloseError
from ptyexec.process_utils import get_process_tree_info

if TYPE_CHECKING:
    from ptyexec.pty import Pty


class PtyRegistry:
    """Thread-safe registry of PTYs that have been opened and not yet closed."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ptys: list[Pty] = []

    def register(self, pty: Pty) -> None:
        with self._lock:
            if pty not in self._ptys:
                self._ptys.append(pty)

    def unregister(self, pty: Pty) -> None:
        with self._lock, contextlib.suppress(ValueError):
            self._ptys.remove(pty)

    def list_open(self) -> list[Pty]:
        with self._lock:
            return [p for p in self._ptys if not p.closed]

    def dump_open(self) -> None:
        """Warn with a description of every open PTY and its child's process tree."""
        open_ptys = self.list_open()
        if not open_ptys:
            warnings.warn("No open PTYs", UserWarning, stacklevel=2)
            return

        warnings.warn("OPEN PTYS:", UserWarning, stacklevel=2)
        for idx, p in enumerate(open_ptys, 1):
            pid = p.pid
            tree = get_process_tree_info(pid) if pid > 0 else "no child"
            warnings.warn(f"  {idx}. fd={p.fd} pid={pid}\n{tree}", UserWarning, stacklevel=2)

    def close_all(self, terminate_child: bool = True) -> None:
        """Close every registered PTY, warning about any that fail to close."""
        with self._lock:
            ptys = list(self._ptys)
        for p in ptys:
            try:
                p.close(terminate_child=terminate_child)
            except PtyCloseError as e:
                warnings.warn(f"Failed to close {p!r}: {e}", UserWarning, stacklevel=2)
            self.unregister(p)

    def __len__(self) -> int:
        with self._lock:
            return len(self._ptys)


# Global singleton instance for convenient access
PtyRegistrySingleton = PtyRegistry()
