import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

import asyncio

from conftest import FAKE_ENGINE, fast_config
from engine.session import EngineSession

WRAPPER = str(ROOT / "tools" / "engine_wrapper.py")


def _spawn(*wrapped):
    argv = [sys.executable, WRAPPER, *wrapped]
    return EngineSession.spawn(sys.executable, argv, fast_config(handshake_ticks=100_000))


def test_wrapper_passes_handshake_through():
    async def scenario():
        session = _spawn("--filter", sys.executable, FAKE_ENGINE, "--banner")
        names = []
        session.on("id_name", names.append)
        try:
            await asyncio.wait_for(session.uci(), timeout=10)
            assert session.state.uciok
            assert names[0].startswith("Stockfish 16")
        finally:
            await session.aclose()

    asyncio.run(scenario())


def test_exec_failure_aborts_the_handshake(tmp_path):
    lines = []

    async def scenario():
        session = _spawn(str(tmp_path / "no-such-engine"))
        session.on("line", lines.append)
        try:
            # Far below the tick budget: the control line ends the wait.
            await asyncio.wait_for(session.uci(), timeout=10)
            assert not session.state.uciok
            assert session.state.handshake_ticks < 0
        finally:
            status = await session.aclose()
            assert status == 127

    asyncio.run(scenario())
    assert lines[-1] == "kill"
    assert lines[0].startswith("exec(")
