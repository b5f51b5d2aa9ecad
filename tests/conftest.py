"""Shared fixtures: a session wired to plain pipes instead of a process."""

import asyncio
import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

from engine.process import EngineProcess
from engine.session import EngineSession
from utils.config_schema import default_config

FAKE_ENGINE = str(ROOT / "tests" / "fake_engine.py")


def fast_config(**io):
    """Default config with a short tick so waits finish quickly in tests."""
    config = default_config()
    config["io"].update({"poll_interval": 0.001, "handshake_ticks": 500, "quit_timeout": 2.0})
    config["io"].update(io)
    return config


class PipeEngine:
    """The engine's side of a pipe-backed session.

    ``write`` plays engine output into the session, ``commands`` returns
    what the session has sent so far.
    """

    def __init__(self, session, out_fd, cmd_fd):
        self.session = session
        self.out_fd = out_fd
        self.cmd_fd = cmd_fd
        self._cmd_buf = b""
        os.set_blocking(cmd_fd, False)

    def write(self, text):
        os.write(self.out_fd, text.encode("utf-8"))

    def commands(self):
        try:
            while True:
                chunk = os.read(self.cmd_fd, 4096)
                if not chunk:
                    break
                self._cmd_buf += chunk
        except BlockingIOError:
            pass
        return self._cmd_buf.decode("utf-8").splitlines()

    def hang_up(self):
        if self.out_fd is not None:
            os.close(self.out_fd)
            self.out_fd = None


@pytest.fixture
def pipe_engine():
    out_r, out_w = os.pipe()
    cmd_r, cmd_w = os.pipe()
    process = EngineProcess(pid=0, read_fd=out_r, write_fd=cmd_w)
    session = EngineSession(process, fast_config())
    engine = PipeEngine(session, out_w, cmd_r)

    yield engine

    asyncio.run(session.aclose())
    engine.hang_up()
    os.close(cmd_r)
