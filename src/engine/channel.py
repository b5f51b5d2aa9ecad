"""Non-blocking line I/O over the engine pipes."""

from __future__ import annotations

import logging
import os
import select
from typing import Callable, Optional

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096
MAX_LINE_LENGTH = 65536


class ChannelReader:
    """Drain whatever the engine has written, one bounded chunk per call.

    Every call does a zero-timeout ``poll`` before reading so it never
    blocks. Complete lines go to *on_line* in the order they were written;
    a partial line is kept until its newline arrives (or flushed when the
    stream ends). A fragment longer than *max_line* bytes is dropped along
    with the rest of its line. *on_eof* fires once when the engine closes
    its end.
    """

    def __init__(
        self,
        fd: int,
        on_line: Callable[[str], None],
        on_eof: Optional[Callable[[], None]] = None,
        *,
        chunk_size: int = READ_CHUNK_SIZE,
        max_line: int = MAX_LINE_LENGTH,
        tag: str = "uci",
        trace: bool = False,
    ) -> None:
        self.fd: Optional[int] = fd
        self.on_line = on_line
        self.on_eof = on_eof
        self.chunk_size = chunk_size
        self.max_line = max_line
        self.tag = tag
        self._trace_level = logging.INFO if trace else logging.DEBUG
        self._pending = b""
        self._discarding = False
        self.eof = False

        self._poller = select.poll()
        self._poller.register(fd, select.POLLIN | select.POLLHUP | select.POLLERR)

    @property
    def closed(self) -> bool:
        return self.fd is None

    def __call__(self) -> None:
        if self.fd is None or self.eof:
            return

        if not self._poller.poll(0):
            return

        try:
            chunk = os.read(self.fd, self.chunk_size)
        except BlockingIOError:
            return
        except OSError as exc:
            logger.warning("%s read error: %s", self.tag, exc)
            chunk = b""

        if not chunk:
            self._finish()
            return

        *lines, pending = (self._pending + chunk).split(b"\n")
        if self._discarding:
            if not lines:
                return
            # Tail of the oversized line.
            lines = lines[1:]
            self._discarding = False

        if len(pending) > self.max_line:
            logger.warning("%s dropped %d bytes without a newline", self.tag, len(pending))
            pending = b""
            self._discarding = True
        self._pending = pending

        for raw in lines:
            self._deliver(raw)

    def _deliver(self, raw: bytes) -> None:
        line = raw.rstrip(b"\r").decode("utf-8", errors="replace")
        logger.log(self._trace_level, "%s < %s", self.tag, line)
        self.on_line(line)

    def _finish(self) -> None:
        if self._pending:
            leftover, self._pending = self._pending, b""
            self._deliver(leftover)
        self.eof = True
        logger.info("%s end of stream", self.tag)
        if self.on_eof is not None:
            self.on_eof()

    def close(self) -> None:
        if self.fd is None:
            return
        fd, self.fd = self.fd, None
        try:
            self._poller.unregister(fd)
        except KeyError:
            pass
        os.close(fd)


class ChannelWriter:
    """Write newline-terminated commands; failures are logged, never raised.

    The fd is put in non-blocking mode; when the pipe is full (the engine
    stopped reading) the command is dropped and the call returns False.
    """

    def __init__(self, fd: int, *, tag: str = "uci", trace: bool = False) -> None:
        os.set_blocking(fd, False)
        self.fd: Optional[int] = fd
        self.tag = tag
        self._trace_level = logging.INFO if trace else logging.DEBUG

    @property
    def closed(self) -> bool:
        return self.fd is None

    def __call__(self, command: str) -> bool:
        data = (command + "\n").encode("utf-8")
        logger.log(self._trace_level, "%s > %s", self.tag, command)

        if self.fd is None:
            logger.warning("%s write after close dropped: %s", self.tag, command)
            return False

        try:
            n = os.write(self.fd, data)
        except BlockingIOError:
            logger.warning("%s pipe full, dropped: %s", self.tag, command)
            return False
        except OSError as exc:
            logger.warning("%s write error: errno=%s (%s)", self.tag, exc.errno, exc.strerror)
            return False

        if n != len(data):
            logger.warning("%s short write: n=%d of %d bytes", self.tag, n, len(data))
            return False
        return True

    def close(self) -> None:
        if self.fd is None:
            return
        fd, self.fd = self.fd, None
        os.close(fd)
