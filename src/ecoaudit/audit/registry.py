"""
Tracks the pid of the running audit process so that a shutdown hook can
terminate it (and whatever it spawned) from any thread.
"""

from __future__ import annotations

import threading
from typing import List, Optional

import psutil
import structlog

from ecoaudit.observability.metrics import METRICS

logger = structlog.get_logger(__name__)


class ProcessRegistry:
    """Single-slot, mutex-protected pid holder."""

    def __init__(self, kill_timeout: float = 3.0) -> None:
        self._lock = threading.Lock()
        self._pid: Optional[int] = None
        self.kill_timeout = kill_timeout

    @property
    def current(self) -> Optional[int]:
        with self._lock:
            return self._pid

    def register(self, pid: int) -> None:
        with self._lock:
            self._pid = pid
        METRICS["audit_processes_running"].set(1)
        logger.debug("Audit process registered", pid=pid)

    def clear(self) -> None:
        with self._lock:
            self._pid = None
        METRICS["audit_processes_running"].set(0)

    def take(self) -> Optional[int]:
        """Read and clear the slot in one step."""
        with self._lock:
            pid, self._pid = self._pid, None
        if pid is not None:
            METRICS["audit_processes_running"].set(0)
        return pid

    def terminate_registered(self) -> Optional[int]:
        """Terminate the registered process tree, if any. Returns the pid."""
        pid = self.take()
        if pid is None:
            return None
        terminate_tree(pid, timeout=self.kill_timeout)
        return pid


def terminate_tree(pid: int, timeout: float = 3.0) -> None:
    """Terminate ``pid`` and its descendants, killing anything that lingers."""
    try:
        parent = psutil.Process(pid)
        procs: List[psutil.Process] = parent.children(recursive=True)
        procs.append(parent)
    except psutil.NoSuchProcess:
        logger.debug("Audit process already exited", pid=pid)
        return

    for proc in procs:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            pass
        except psutil.AccessDenied as e:
            logger.warning("Cannot terminate process", pid=proc.pid, error=str(e))

    _, alive = psutil.wait_procs(procs, timeout=timeout)
    for proc in alive:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass
        except psutil.AccessDenied as e:
            logger.warning("Cannot kill process", pid=proc.pid, error=str(e))

    logger.info("Audit process tree terminated", pid=pid, processes=len(procs))
