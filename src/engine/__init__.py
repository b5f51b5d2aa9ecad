"""UCI engine driver: process launch, pipe I/O, protocol parsing, sessions."""

from .events import EngineEvent
from .process import EngineError, EngineSpawnError
from .protocol import OptionDescriptor, SessionState
from .player import EnginePlayer
from .session import EngineSession

__all__ = [
    "EngineEvent",
    "EngineError",
    "EngineSpawnError",
    "EnginePlayer",
    "EngineSession",
    "OptionDescriptor",
    "SessionState",
]
