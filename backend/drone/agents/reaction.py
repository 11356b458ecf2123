import asyncio
import random
from typing import Awaitable, Callable, Optional

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_MAX_WAIT_MS = 1000


class ReactionSimulator:
    """
    Stand-in for real drone work: a uniformly random delay in
    [0, max_wait_ms) milliseconds.
    """

    def __init__(
        self,
        max_wait_ms: int = DEFAULT_MAX_WAIT_MS,
        rng: Optional[random.Random] = None,
        sleep: Optional[Sleep] = None,
    ) -> None:
        if max_wait_ms <= 0:
            raise ValueError(f"max_wait_ms must be positive, got {max_wait_ms}")

        self.max_wait_ms = max_wait_ms
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep

    def draw(self) -> int:
        return min(int(self._rng.random() * self.max_wait_ms), self.max_wait_ms - 1)

    async def wait(self, wait_ms: int) -> None:
        await self._sleep(wait_ms / 1000)
