"""Engine events and the listener registry."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Union

logger = logging.getLogger(__name__)


class EngineEvent(str, Enum):
    UCIOK = "uciok"
    ID_NAME = "id_name"
    ID_AUTHOR = "id_author"
    OPTION = "option"
    READYOK = "readyok"
    INFO = "info"
    BESTMOVE = "bestmove"
    OPTION_SET = "option_set"
    LINE = "line"
    EOF = "eof"


Listener = Callable[..., Any]


class CallbackRegistry:
    """Ordered listeners per event.

    Listeners run in registration order. An exception in one listener is
    logged and does not reach the other listeners or the code that fired
    the event.
    """

    def __init__(self) -> None:
        self._listeners: Dict[EngineEvent, List[Listener]] = {}

    def on(self, event: Union[EngineEvent, str], listener: Listener) -> None:
        if not callable(listener):
            raise TypeError(f"listener for {event!r} must be callable")
        key = EngineEvent(event)
        self._listeners.setdefault(key, []).append(listener)

    def trigger(self, event: Union[EngineEvent, str], *args: Any) -> None:
        key = EngineEvent(event)
        for listener in list(self._listeners.get(key, ())):
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener %r for '%s' failed", listener, key.value)

    def listeners(self, event: Union[EngineEvent, str]) -> List[Listener]:
        return list(self._listeners.get(EngineEvent(event), ()))
