import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

import asyncio
import logging

import pytest

from engine.events import CallbackRegistry, EngineEvent
from engine.scheduler import polling_loop


def test_listeners_run_in_registration_order():
    registry = CallbackRegistry()
    calls = []
    registry.on("bestmove", lambda move, ponder: calls.append(("first", move, ponder)))
    registry.on(EngineEvent.BESTMOVE, lambda move, ponder: calls.append(("second", move, ponder)))

    registry.trigger(EngineEvent.BESTMOVE, "e2e4", None)

    assert calls == [("first", "e2e4", None), ("second", "e2e4", None)]


def test_failing_listener_is_isolated(caplog):
    registry = CallbackRegistry()
    calls = []

    def broken():
        raise RuntimeError("boom")

    registry.on("uciok", broken)
    registry.on("uciok", lambda: calls.append("after"))

    with caplog.at_level(logging.ERROR, logger="engine.events"):
        registry.trigger("uciok")

    assert calls == ["after"]
    assert "boom" in caplog.text


def test_unknown_event_name_rejected():
    registry = CallbackRegistry()
    with pytest.raises(ValueError):
        registry.on("bestmoves", lambda *a: None)


def test_non_callable_listener_rejected():
    with pytest.raises(TypeError):
        CallbackRegistry().on("info", "not a function")


def test_trigger_without_listeners_is_fine():
    CallbackRegistry().trigger(EngineEvent.EOF)


def test_polling_loop_runs_action_until_condition_fails():
    calls = []
    budget = {"left": 3}

    def condition():
        budget["left"] -= 1
        return budget["left"] > 0

    async def scenario():
        await polling_loop(0.001, lambda: calls.append(len(calls)), condition)

    asyncio.run(scenario())
    assert calls == [0, 1, 2]


def test_polling_loop_without_condition_runs_once():
    calls = []

    async def scenario():
        await polling_loop(0.001, lambda: calls.append(1))

    asyncio.run(scenario())
    assert calls == [1]


def test_polling_loop_yields_to_other_tasks():
    order = []

    async def other():
        order.append("other")

    async def scenario():
        ticks = {"n": 0}

        def action():
            ticks["n"] += 1
            order.append("tick")

        task = polling_loop(0.001, action, lambda: ticks["n"] < 3)
        await asyncio.gather(task, other())

    asyncio.run(scenario())
    assert order.count("tick") == 3
    assert order.index("other") < len(order) - 1


def test_delayed_polling_loop_waits_first():
    calls = []

    async def scenario():
        task = polling_loop(0.05, lambda: calls.append(1), delayed=True)
        await asyncio.sleep(0)
        assert calls == []
        await task

    asyncio.run(scenario())
    assert calls == [1]
