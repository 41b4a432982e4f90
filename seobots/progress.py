"""Per-bot progress state and snapshot publication."""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from .models import BotState, BotStatus

logger = logging.getLogger(__name__)

ProgressSink = Callable[[List[BotState]], Union[None, Awaitable[None]]]


class BotHandle:
    """Write access to exactly one bot slot."""

    def __init__(self, tracker: "BotTracker", index: int):
        self._tracker = tracker
        self.index = index

    @property
    def state(self) -> BotState:
        return self._tracker.bots[self.index]

    async def update(self, **changes: Any) -> None:
        await self._tracker.update(self.index, **changes)

    async def start(self) -> None:
        await self.update(status=BotStatus.RUNNING)

    async def complete(self, findings: int) -> None:
        await self.update(status=BotStatus.COMPLETED, findings=findings)

    async def fail(self) -> None:
        await self.update(status=BotStatus.ERROR, progress=0, findings=1)


class BotTracker:
    """Holds the bot states of one analysis run.

    Each analyzer task writes only through its own handle. After every
    mutation the whole array is copied and pushed to the sink; publishing is
    serialized so the sink never runs concurrently with itself.
    """

    def __init__(self, bots: Sequence[BotState], sink: Optional[ProgressSink] = None):
        self.bots: List[BotState] = [bot.model_copy() for bot in bots]
        self._sink = sink
        self._publish_lock = asyncio.Lock()

    def handle(self, index: int) -> BotHandle:
        return BotHandle(self, index)

    def snapshot(self) -> List[BotState]:
        return [bot.model_copy() for bot in self.bots]

    async def update(self, index: int, **changes: Any) -> None:
        bot = self.bots[index]
        if bot.is_terminal:
            logger.debug(f"Ignoring update for finished bot {bot.name}: {changes}")
            return

        for field, value in changes.items():
            setattr(bot, field, value)
        await self.publish()

    async def publish(self) -> None:
        if self._sink is None:
            return

        async with self._publish_lock:
            try:
                result = self._sink(self.snapshot())
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                # A failing consumer must not take an analyzer down with it
                logger.warning(f"Progress sink failed: {type(e).__name__}: {e}", exc_info=True)
