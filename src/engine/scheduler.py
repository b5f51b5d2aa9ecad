"""Cooperative polling on the asyncio event loop.

Waiting on the engine never blocks the loop: a polling task runs a short
non-blocking action, yields for ``interval`` seconds, and repeats while a
predicate holds. Stopping a wait means driving the predicate false.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional


def polling_loop(
    interval: float,
    action: Callable[[], None],
    condition: Optional[Callable[[], bool]] = None,
    delayed: bool = False,
) -> "asyncio.Task[None]":
    """Run *action* now, then every *interval* seconds while *condition()*.

    Must be called with a running event loop. Returns the task so callers
    can await completion of the wait; without a *condition* the action runs
    exactly once.
    """

    async def _loop() -> None:
        if delayed:
            await asyncio.sleep(interval)
        while True:
            action()
            if condition is None or not condition():
                return
            await asyncio.sleep(interval)

    return asyncio.get_running_loop().create_task(_loop())
