"""Pydantic models describing the engine driver configuration.

These models mirror the structure of ``configs/engine.yaml`` and provide
type validation as well as sensible defaults for optional fields.

The top-level :class:`ConfigModel` requires every section (``engine``,
``io``, ``logging``), so a missing section results in a clear validation
error. Fields inside those sections carry defaults so that minor omissions
fall back to reasonable values.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EngineConfig(BaseModel):
    path: str = "stockfish"
    args: list[str] = Field(default_factory=list)
    banner_prefixes: list[str] = Field(default_factory=lambda: ["Stockfish"])
    # Applied once per handshake, advertised by the engine or not.
    startup_options: dict[str, str | int | bool | None] = Field(default_factory=dict)
    new_game_command: str = "ucinewgame"


class IOConfig(BaseModel):
    read_chunk_size: int = Field(4096, gt=0)
    max_line_length: int = Field(65536, gt=0)
    poll_interval: float = Field(0.05, gt=0)
    handshake_ticks: int = Field(200, gt=0)
    niceness: int = Field(5, ge=-20, le=19)
    quit_timeout: float = Field(2.0, ge=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str | None = None
    trace_io: bool = False


class ConfigModel(BaseModel):
    """Complete configuration model."""

    model_config = ConfigDict(extra="forbid")

    engine: EngineConfig
    io: IOConfig
    logging: LoggingConfig


def default_config() -> dict:
    """Configuration with every field at its default, as a plain dict."""
    return ConfigModel(engine=EngineConfig(), io=IOConfig(), logging=LoggingConfig()).model_dump()
