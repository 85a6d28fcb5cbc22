"""Process-tree helpers for PTY children."""

from __future__ import annotations

import contextlib
import warnings

import psutil


def get_process_tree_info(pid: int) -> str:
    """Describe a process and its descendants, one line per process."""
    try:
        process = psutil.Process(pid)
        info = [f"Process {pid} ({process.name()}) status={process.status()}"]
        with contextlib.suppress(psutil.AccessDenied):
            info.append(f"  terminal: {process.terminal()}")
        for child in process.children(recursive=True):
            with contextlib.suppress(psutil.NoSuchProcess):
                info.append(f"  child {child.pid} ({child.name()}) status={child.status()}")
        return "\n".join(info)
    except psutil.NoSuchProcess:
        return f"Process {pid} no longer exists"
    except psutil.Error:
        return f"Could not get process info for PID {pid}"


def kill_process_tree(pid: int, timeout: float = 3) -> None:
    """Kill a process and all of its descendants.

    Descendants get SIGTERM, then SIGKILL once ``timeout`` runs out. The root
    is killed outright but never waited on, so whoever forked it can still
    reap its exit status.
    """
    try:
        root = psutil.Process(pid)
        descendants = root.children(recursive=True)
    except psutil.NoSuchProcess:
        return
    except psutil.Error as e:
        warnings.warn(f"Error listing process tree of {pid}: {e}", UserWarning, stacklevel=2)
        return

    for child in descendants:
        with contextlib.suppress(psutil.NoSuchProcess):
            child.terminate()

    _, alive = psutil.wait_procs(descendants, timeout=timeout)
    for child in alive:
        with contextlib.suppress(psutil.NoSuchProcess):
            child.kill()

    try:
        root.kill()
    except psutil.NoSuchProcess:
        pass
    except psutil.Error as e:
        warnings.warn(f"Error killing process {pid}: {e}", UserWarning, stacklevel=2)
