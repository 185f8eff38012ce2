"""Single-shot capture countdown."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[], Awaitable[None]]


class CountdownTimer:
    """Async countdown that fires its callback once per arming.

    Re-arming cancels the pending arming first; ``disarm`` cancels without
    firing, and also cancels a completion callback that is still in flight. The countdown is a single delayed completion; ``remaining_ms`` is
    derived from the loop clock and rounded down to ``tick_ms`` for display.
    """

    def __init__(
        self,
        *,
        duration_ms: int,
        on_complete: CompletionCallback,
        tick_ms: int = 10,
    ) -> None:
        self.duration_ms = duration_ms
        self.tick_ms = max(1, tick_ms)
        self._on_complete = on_complete

        self._task: Optional[asyncio.Task[None]] = None
        self._deadline: Optional[float] = None
        self._armed_ms: int = duration_ms
        self._generation = 0

    @property
    def running(self) -> bool:
        """True while an arming is pending (completion not yet fired)."""
        return self._deadline is not None

    @property
    def task(self) -> Optional[asyncio.Task[None]]:
        return self._task

    @property
    def remaining_ms(self) -> int:
        if self._deadline is None:
            return 0
        left = (self._deadline - asyncio.get_running_loop().time()) * 1000.0
        if left <= 0:
            return 0
        return int(left // self.tick_ms) * self.tick_ms

    def arm(self, duration_ms: Optional[int] = None) -> None:
        self.disarm()
        loop = asyncio.get_running_loop()
        self._armed_ms = self.duration_ms if duration_ms is None else max(0, int(duration_ms))
        self._deadline = loop.time() + self._armed_ms / 1000.0
        self._generation += 1
        self._task = asyncio.create_task(self._run(self._generation), name="capture-countdown")
        logger.debug("⏱️ Countdown armed (%dms)", self._armed_ms)

    def disarm(self) -> None:
        """Cancel a pending arming, or a completion callback still running."""
        self._deadline = None
        task = self._task
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        logger.debug("⏱️ Countdown disarmed")

    async def _run(self, generation: int) -> None:
        try:
            await asyncio.sleep(self._armed_ms / 1000.0)
        except asyncio.CancelledError:
            return

        # a newer arming or a disarm owns the timer now
        if generation != self._generation or self._deadline is None:
            return
        self._deadline = None
        logger.debug("⏱️ Countdown complete")
        try:
            await self._on_complete()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Countdown completion callback failed")


__all__ = ["CountdownTimer", "CompletionCallback"]
