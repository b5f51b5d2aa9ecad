"""UCI line parsing and the session state it maintains.

Engines differ a lot in what they print, so the parser is tolerant: lines it
does not recognise, and recognised lines that are malformed, are dropped
without touching the state.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .events import EngineEvent

logger = logging.getLogger(__name__)

# Not part of UCI. Seeing it on the wire (or via abort()) ends any wait.
CONTROL_SENTINEL = "kill"

DEFAULT_BANNER_PREFIXES = ("Stockfish",)
DEFAULT_HANDSHAKE_TICKS = 200

_BESTMOVE_PONDER_RE = re.compile(r"^bestmove\s+(\S+)\s*ponder\s*(\S*)$")
_BESTMOVE_RE = re.compile(r"^bestmove\s+(\S+)")


@dataclass
class OptionDescriptor:
    """An engine option. Bounds and values are kept as the engine sent them."""

    kind: Optional[str] = None
    default: Optional[str] = None
    value: Optional[str] = None
    min: Optional[str] = None
    max: Optional[str] = None


@dataclass
class SessionState:
    uciok: bool = False
    readyok: bool = False
    id_name: Optional[str] = None
    id_author: Optional[str] = None
    options: Dict[str, OptionDescriptor] = field(default_factory=dict)
    infos: List[str] = field(default_factory=list)
    bestmove: Optional[str] = None
    ponder: Optional[str] = None
    handshake_ticks: int = DEFAULT_HANDSHAKE_TICKS

    def reset(self, handshake_ticks: int = DEFAULT_HANDSHAKE_TICKS) -> None:
        """Forget everything learnt from the engine, in place."""
        self.uciok = False
        self.readyok = False
        self.id_name = None
        self.id_author = None
        self.options = {}
        self.infos = []
        self.bestmove = None
        self.ponder = None
        self.handshake_ticks = handshake_ticks


def parse_option(line: str) -> Optional[tuple[str, OptionDescriptor]]:
    """Parse an ``option name <name...> type <kind> [default|min|max <v>]*`` line.

    Returns ``None`` when ``name``, ``type`` or the kind is missing.
    """
    parts = line.split()

    try:
        name_start = parts.index("name") + 1
    except ValueError:
        return None

    name_parts = []
    type_idx = None
    for i in range(name_start, len(parts)):
        if parts[i] == "type":
            type_idx = i
            break
        name_parts.append(parts[i])

    if type_idx is None or type_idx + 1 >= len(parts):
        return None

    descriptor = OptionDescriptor(kind=parts[type_idx + 1])
    for i in range(type_idx + 2, len(parts)):
        value = parts[i + 1] if i + 1 < len(parts) else None
        if parts[i] == "default":
            descriptor.default = value
            descriptor.value = value
        elif parts[i] == "min":
            descriptor.min = value
        elif parts[i] == "max":
            descriptor.max = value

    return " ".join(name_parts), descriptor


def parse_bestmove(line: str) -> Optional[tuple[str, Optional[str]]]:
    """Return ``(move, ponder)`` for a bestmove line, ``None`` if malformed."""
    match = _BESTMOVE_PONDER_RE.match(line)
    if match:
        return match.group(1), match.group(2) or None
    match = _BESTMOVE_RE.match(line)
    if match:
        return match.group(1), None
    return None


class ProtocolParser:
    """Classify engine output lines and update :class:`SessionState`.

    ``emit(event, *args)`` is called for every recognised line that changed
    the state.
    """

    def __init__(
        self,
        state: SessionState,
        emit: Callable[..., Any],
        banner_prefixes: Sequence[str] = DEFAULT_BANNER_PREFIXES,
    ) -> None:
        self.state = state
        self.emit = emit
        self.banner_prefixes = tuple(banner_prefixes)

    def feed(self, line: str) -> None:
        line = line.strip()
        state = self.state
        head = line.split(None, 1)[0] if line else ""

        if line == CONTROL_SENTINEL:
            state.handshake_ticks = -1
        elif line == "uciok":
            state.uciok = True
            self.emit(EngineEvent.UCIOK)
        elif state.id_name is None and self.banner_prefixes and line.startswith(self.banner_prefixes):
            # Some builds greet with "Stockfish 16 by ..." before any UCI
            # output. Good enough for a name until "id name" arrives.
            state.id_name = line
            self.emit(EngineEvent.ID_NAME, line)
            if not state.uciok:
                state.uciok = True
                self.emit(EngineEvent.UCIOK)
        elif head == "id":
            self._feed_id(line)
        elif head == "option":
            parsed = parse_option(line)
            if parsed is None:
                logger.debug("Dropping malformed option line: %s", line)
                return
            name, descriptor = parsed
            state.options[name] = descriptor
            self.emit(
                EngineEvent.OPTION,
                name,
                descriptor.kind,
                descriptor.default,
                descriptor.min,
                descriptor.max,
            )
        elif line == "readyok":
            state.readyok = True
            self.emit(EngineEvent.READYOK)
        elif head == "info":
            state.infos.append(line)
            self.emit(EngineEvent.INFO, line)
        elif head == "bestmove":
            parsed = parse_bestmove(line)
            if parsed is None:
                logger.debug("Dropping malformed bestmove line: %s", line)
                return
            state.bestmove, state.ponder = parsed
            self.emit(EngineEvent.BESTMOVE, state.bestmove, state.ponder)

    def _feed_id(self, line: str) -> None:
        parts = line.split(None, 2)
        if len(parts) < 3:
            return
        if parts[1] == "name":
            self.state.id_name = parts[2]
            self.emit(EngineEvent.ID_NAME, parts[2])
        elif parts[1] == "author":
            self.state.id_author = parts[2]
            self.emit(EngineEvent.ID_AUTHOR, parts[2])
