"""Launching UCI engine processes.

The engine runs as a child process with its stdin/stdout wired to a pair of
pipes owned by the parent. Stderr is folded into stdout so that start-up
errors printed by the engine show up in the normal line stream.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from dataclasses import dataclass, field
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_NICENESS = 5


class EngineError(RuntimeError):
    """Base class for engine driver failures."""


class EngineSpawnError(EngineError):
    """Raised when the engine process (or its pipes) cannot be created."""


@dataclass
class EngineProcess:
    """Handle on a running engine: pid plus the parent's ends of both pipes."""

    pid: int
    read_fd: int
    write_fd: int
    popen: Optional[subprocess.Popen] = field(default=None, repr=False)

    @property
    def running(self) -> bool:
        return self.popen is not None and self.popen.poll() is None

    def poll(self) -> Optional[int]:
        """Return the exit status if the child has terminated, else ``None``."""
        if self.popen is None:
            return None
        return self.popen.poll()

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        if self.popen is None:
            return None
        return self.popen.wait(timeout)

    def terminate(self) -> None:
        self._signal_group(signal.SIGTERM)

    def kill(self) -> None:
        self._signal_group(signal.SIGKILL)

    def _signal_group(self, sig: int) -> None:
        if self.popen is None or self.popen.poll() is not None:
            return
        try:
            # The child leads its own process group, take helpers down with it.
            os.killpg(self.pid, sig)
        except ProcessLookupError:
            pass
        except PermissionError as exc:
            logger.warning("Cannot signal engine group %d: %s", self.pid, exc)
            self.popen.send_signal(sig)


def _close_fds(*fds: int) -> None:
    for fd in fds:
        try:
            os.close(fd)
        except OSError:
            pass


def _lower_priority(pid: int, niceness: int) -> None:
    """Best effort: batch scheduling class and a higher nice value for *pid*."""
    if hasattr(os, "sched_setscheduler") and hasattr(os, "SCHED_BATCH"):
        try:
            os.sched_setscheduler(pid, os.SCHED_BATCH, os.sched_param(0))
        except OSError as exc:
            logger.debug("sched_setscheduler(%d) failed: %s", pid, exc)
    try:
        os.setpriority(os.PRIO_PROCESS, pid, niceness)
    except OSError as exc:
        logger.debug("setpriority(%d, %d) failed: %s", pid, niceness, exc)


def spawn_engine(
    path: str,
    argv: Optional[Sequence[str]] = None,
    niceness: int = DEFAULT_NICENESS,
) -> EngineProcess:
    """Start *path* with piped stdin/stdout in its own process group.

    Args:
        path: Executable to run (looked up on ``PATH`` if not absolute).
        argv: Full argument vector. ``argv[0]`` is what the engine sees as
            its own name; defaults to ``[path]``.
        niceness: Nice value applied to the child after start. Failure to
            apply it is logged and ignored.

    Returns:
        EngineProcess: pid plus the parent's read and write descriptors.

    Raises:
        EngineSpawnError: If a pipe cannot be created or the executable
            cannot be started. No descriptor is leaked in that case.
    """
    args = list(argv) if argv else [path]

    try:
        p2c_r, p2c_w = os.pipe()
    except OSError as exc:
        raise EngineSpawnError(f"pipe1: {exc.strerror}") from exc
    try:
        c2p_r, c2p_w = os.pipe()
    except OSError as exc:
        _close_fds(p2c_r, p2c_w)
        raise EngineSpawnError(f"pipe2: {exc.strerror}") from exc

    try:
        proc = subprocess.Popen(
            args,
            executable=path,
            stdin=p2c_r,
            stdout=c2p_w,
            stderr=c2p_w,
            close_fds=True,
            process_group=0,
        )
    except (OSError, ValueError) as exc:
        _close_fds(p2c_r, p2c_w, c2p_r, c2p_w)
        reason = getattr(exc, "strerror", None) or str(exc)
        raise EngineSpawnError(f"exec {path}: {reason}") from exc

    # The child holds its own copies now.
    _close_fds(p2c_r, c2p_w)
    _lower_priority(proc.pid, niceness)

    logger.info("Started engine %s (pid %d)", path, proc.pid)
    return EngineProcess(pid=proc.pid, read_fd=c2p_r, write_fd=p2c_w, popen=proc)
