"""Driving a UCI engine from the asyncio event loop.

:class:`EngineSession` owns the engine process and both pipes. Commands are
written straight away; replies are read by polling tasks, so coroutines such as
:meth:`EngineSession.uci` and :meth:`EngineSession.go` hand control back to
the loop between ticks instead of blocking it::

    session = EngineSession.spawn("stockfish")
    session.on("bestmove", lambda move, ponder: print(move))
    await session.uci()
    session.position(moves="e2e4 e7e5")
    await session.go(movetime=500)
    await session.aclose()
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from .channel import ChannelReader, ChannelWriter
from .events import CallbackRegistry, EngineEvent, Listener
from .process import DEFAULT_NICENESS, EngineProcess, spawn_engine
from .protocol import CONTROL_SENTINEL, ProtocolParser, OptionDescriptor, SessionState
from .scheduler import polling_loop

logger = logging.getLogger(__name__)


def format_value(value: Any) -> str:
    """Render a Python value the way UCI expects it on the wire."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class EngineSession:
    """A running UCI engine plus everything learnt from it."""

    def __init__(self, process: EngineProcess, config: Optional[dict] = None) -> None:
        if config is None:
            from utils.config_schema import default_config

            config = default_config()

        io_cfg = config["io"]
        self.config = config
        self.poll_interval: float = io_cfg["poll_interval"]
        self.handshake_ticks: int = io_cfg["handshake_ticks"]
        self.quit_timeout: float = io_cfg["quit_timeout"]

        self.process = process
        self.state = SessionState(handshake_ticks=self.handshake_ticks)
        self.callbacks = CallbackRegistry()
        self.parser = ProtocolParser(
            self.state,
            self._trigger,
            banner_prefixes=config["engine"]["banner_prefixes"],
        )

        trace = config["logging"]["trace_io"]
        self._reader = ChannelReader(
            process.read_fd,
            self._on_line,
            self._on_eof,
            chunk_size=io_cfg["read_chunk_size"],
            max_line=io_cfg["max_line_length"],
            trace=trace,
        )
        self.send = ChannelWriter(process.write_fd, trace=trace)

        self._handshake_done = False
        self._search: Optional[asyncio.Task] = None
        self.on(EngineEvent.UCIOK, self._mark_handshake)

    @classmethod
    def spawn(
        cls,
        path: str,
        argv: Optional[Sequence[str]] = None,
        config: Optional[dict] = None,
    ) -> "EngineSession":
        """Start the engine at *path*; raises ``EngineSpawnError`` on failure."""
        niceness = config["io"]["niceness"] if config else DEFAULT_NICENESS
        process = spawn_engine(path, argv, niceness=niceness)
        return cls(process, config)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: Union[EngineEvent, str], listener: Listener) -> None:
        self.callbacks.on(event, listener)

    def _trigger(self, event: Union[EngineEvent, str], *args: Any) -> None:
        self.callbacks.trigger(event, *args)

    def _on_line(self, line: str) -> None:
        self.parser.feed(line)
        self._trigger(EngineEvent.LINE, line)

    def _on_eof(self) -> None:
        logger.info("Engine (pid %d) closed its output", self.process.pid)
        self.state.handshake_ticks = -1
        self._trigger(EngineEvent.EOF)

    def _mark_handshake(self) -> None:
        self._handshake_done = True

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def closed(self) -> bool:
        return self.send.closed and self._reader.closed

    @property
    def alive(self) -> bool:
        """True while waits may still run: not stopped, aborted or at EOF."""
        return self.state.handshake_ticks > 0 and not self._reader.eof

    @property
    def searching(self) -> bool:
        return self._search is not None and not self._search.done()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def pump(self) -> None:
        """One drain-and-parse pass over whatever the engine has written."""
        self._reader()

    async def uci(self) -> None:
        """Run the handshake, waiting (cooperatively) for ``uciok``.

        Returns on ``uciok`` or when the tick budget runs out; a timeout is
        not an error, check ``state.uciok``.
        """
        self.state.reset(self.handshake_ticks)
        self.send("uci")

        def _waiting() -> bool:
            self.state.handshake_ticks -= 1
            return not self.state.uciok and self.alive

        await polling_loop(self.poll_interval, self._reader, _waiting)

    def isready(self) -> None:
        self.state.readyok = False
        self.send("isready")

    def set_option(self, name: str, value: Any = None) -> None:
        """Send ``setoption`` and record *value* locally, advertised or not."""
        if not isinstance(name, str) or not name:
            raise TypeError("set_option: 'name' must be a non-empty string")

        cmd = f"setoption name {name}"
        text = None
        if value is not None:
            text = format_value(value)
            cmd += f" value {text}"
        self.send(cmd)

        option = self.state.options.get(name)
        if option is None:
            self.state.options[name] = OptionDescriptor(value=text)
        else:
            option.value = text
        self._trigger(EngineEvent.OPTION_SET, name, text)

    def position(
        self,
        fen: Optional[str] = None,
        moves: Union[str, Iterable[str], None] = None,
    ) -> None:
        """Send ``position startpos|fen <fen> [moves ...]``."""
        if fen is None or fen == "startpos":
            cmd = "position startpos"
        else:
            cmd = f"position fen {fen}"

        if moves is not None:
            if not isinstance(moves, str):
                moves = " ".join(moves)
            moves = moves.strip()
            if moves:
                cmd += f" moves {moves}"

        self.send(cmd)

    async def go(
        self,
        search_options: Optional[Mapping[str, Any]] = None,
        **limits: Any,
    ) -> None:
        """Start a search and wait (cooperatively) for ``bestmove``.

        Options are sent in insertion order as ``<key> <value>``; a ``None``
        value sends the bare key (``infinite``). Returns once a ``bestmove``
        arrives or the wait is ended by ``stop``/``abort``/EOF. Wrap it in
        ``asyncio.create_task`` to keep searching in the background.
        """
        options = dict(search_options or {})
        options.update(limits)

        if self.searching:
            logger.warning("go issued while a previous search is still pending")

        parts = ["go"]
        for key, value in options.items():
            parts.append(key if value is None else f"{key} {format_value(value)}")

        self.state.bestmove = None
        self.state.ponder = None
        self.send(" ".join(parts))

        self._search = polling_loop(
            self.poll_interval,
            self._reader,
            lambda: self.state.bestmove is None and self.alive,
        )
        await self._search

    def stop(self) -> None:
        """Ask the engine to stop and quit, and end every pending wait."""
        if self._handshake_done and not self.send.closed:
            self.send("stop")
            self.send("quit")
        self.state.handshake_ticks = -1
        self.send.close()

    def abort(self) -> None:
        """End any pending wait without talking to the engine."""
        self.parser.feed(CONTROL_SENTINEL)

    async def aclose(self, timeout: Optional[float] = None) -> Optional[int]:
        """Stop the engine, reap it and release both pipes.

        Waits up to *timeout* (``io.quit_timeout`` by default) for a clean
        exit after ``quit``, then terminates the process group. Returns the
        exit status.
        """
        self.stop()
        timeout = self.quit_timeout if timeout is None else timeout

        deadline = time.monotonic() + timeout
        while self.process.running and time.monotonic() < deadline:
            await asyncio.sleep(self.poll_interval)

        for stop_signal in (self.process.terminate, self.process.kill):
            if not self.process.running:
                break
            logger.warning("Engine (pid %d) still running, sending %s", self.pid, stop_signal.__name__)
            stop_signal()
            await asyncio.sleep(self.poll_interval)

        status = await asyncio.to_thread(self.process.wait)
        self._reader.close()
        logger.info("Engine (pid %d) exited with status %s", self.pid, status)
        return status
