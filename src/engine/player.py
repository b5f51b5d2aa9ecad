from __future__ import annotations

import logging
from typing import Any, Optional

import chess

from .events import EngineEvent
from .process import EngineSpawnError
from .session import EngineSession

logger = logging.getLogger(__name__)


class EnginePlayer:
    """Use a UCI engine as the move source for a :class:`chess.Board`.

    The player owns an :class:`EngineSession`, applies the configured
    start-up options once per handshake (never while a search is running),
    and turns the engine's ``bestmove`` text back into legal ``chess.Move``
    objects.
    :meth:`select_move` is a coroutine, so it can be awaited alongside
    other async work without stalling the loop.
    """

    def __init__(self, session: EngineSession, config: Optional[dict] = None) -> None:
        self.session = session
        self.config = config if config is not None else session.config
        self.available = True
        self._startup_pending = True

        session.on(EngineEvent.UCIOK, self._apply_startup_options)
        session.on(EngineEvent.EOF, self._on_eof)

    @classmethod
    async def start(cls, config: dict) -> Optional["EnginePlayer"]:
        """Spawn the configured engine and run the handshake.

        Returns ``None`` when the engine cannot be started, so callers can
        carry on without one.
        """
        engine_cfg = config["engine"]
        argv = [engine_cfg["path"], *engine_cfg["args"]]
        try:
            session = EngineSession.spawn(engine_cfg["path"], argv, config)
        except EngineSpawnError as exc:
            logger.error("Failed to load chess engine at %s: %s", engine_cfg["path"], exc)
            return None

        player = cls(session, config)
        await player.handshake()
        if not session.state.uciok:
            logger.warning("Engine %s did not finish the UCI handshake", engine_cfg["path"])
        return player

    async def handshake(self) -> None:
        """Run ``uci``; start-up options go out on the first ``uciok``."""
        self._startup_pending = True
        await self.session.uci()

    # ------------------------------------------------------------------
    def _apply_startup_options(self) -> None:
        # A banner counts as uciok, so the real one can arrive mid-search.
        if not self._startup_pending:
            return
        if self.session.searching:
            logger.info("Search running, start-up options deferred")
            return
        self._startup_pending = False

        for name, value in self.config["engine"]["startup_options"].items():
            advertised = name in self.session.state.options
            logger.info(
                "Setting %s = %s (%s)", name, value, "advertised" if advertised else "not advertised"
            )
            self.session.set_option(name, value)

    def _on_eof(self) -> None:
        logger.error("The chess engine has stopped running (pid %d)", self.session.pid)
        self.available = False

    @property
    def ready(self) -> bool:
        return self.available and self.session.state.uciok

    def label(self) -> str:
        """Display name, with the Elo limit when the engine has one set."""
        state = self.session.state
        text = state.id_name or "Engine"
        elo = state.options.get("UCI_Elo")
        if elo is not None and elo.value is not None:
            text += f" ({elo.value})"
        return text

    # ------------------------------------------------------------------
    async def select_move(
        self,
        board: chess.Board,
        wtime: Optional[float] = None,
        btime: Optional[float] = None,
        **limits: Any,
    ) -> Optional[chess.Move]:
        """Return the engine's move for *board*, or ``None`` if it gave none.

        *wtime*/*btime* are remaining clock times in seconds; they are sent
        in milliseconds. Extra keyword arguments go to ``go`` unchanged.
        """
        if not self.ready:
            logger.warning("select_move called without a ready engine")
            return None

        if self._startup_pending:
            self._apply_startup_options()

        root = board.root()
        fen = None if root.fen() == chess.STARTING_FEN else root.fen()
        self.session.position(fen=fen, moves=[move.uci() for move in board.move_stack])

        params: dict = {}
        if wtime is not None:
            params["wtime"] = int(wtime * 1000)
        if btime is not None:
            params["btime"] = int(btime * 1000)
        params.update(limits)

        await self.session.go(params)
        return self._to_move(board, self.session.state.bestmove)

    def apply_best_move(self, board: chess.Board) -> Optional[chess.Move]:
        """Push the last ``bestmove`` onto *board* if it is legal there."""
        move = self._to_move(board, self.session.state.bestmove)
        if move is not None:
            board.push(move)
        return move

    @staticmethod
    def _to_move(board: chess.Board, text: Optional[str]) -> Optional[chess.Move]:
        if not text or text in ("(none)", "0000"):
            return None
        try:
            move = chess.Move.from_uci(text)
        except ValueError:
            logger.warning("Engine sent an unparsable move: %s", text)
            return None
        if move not in board.legal_moves:
            logger.warning("Engine sent an illegal move %s for %s", text, board.fen())
            return None
        return move

    # ------------------------------------------------------------------
    def halt(self) -> None:
        """Stop the current search, leaving the engine running."""
        if self.session.state.uciok:
            self.session.send("stop")

    def new_game(self) -> None:
        self.halt()
        if self.session.state.uciok:
            self.session.send(self.config["engine"]["new_game_command"])

    async def aclose(self) -> None:
        await self.session.aclose()
