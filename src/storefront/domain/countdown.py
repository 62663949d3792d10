"""
Resend countdown - Cancellable one-second ticker owned by a flow.

Advisory UI throttling only. The backend enforces the real rate limit.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ResendCountdown:
    """
    Counts ``remaining`` down to zero, one step per elapsed second.

    A single task runs at a time; restarting replaces it. The owner must
    call cancel() on teardown so no ticker outlives its flow.
    """

    def __init__(self, sleep: Sleep = asyncio.sleep) -> None:
        self._sleep = sleep
        self._task: Optional[asyncio.Task[None]] = None
        self.remaining = 0

    @property
    def active(self) -> bool:
        return self.remaining > 0

    def restart(self, seconds: int) -> None:
        """Cancel any running ticker and count down from ``seconds``."""
        self.cancel()
        self.remaining = max(seconds, 0)
        if self.remaining:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        """Stop ticking, keeping the current value."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def reset(self) -> None:
        """Stop ticking and clear the countdown."""
        self.cancel()
        self.remaining = 0

    async def wait(self) -> None:
        """Wait until the running ticker finishes or is cancelled."""
        if self._task is not None:
            await asyncio.wait({self._task})

    async def _run(self) -> None:
        while self.remaining > 0:
            await self._sleep(1)
            self.remaining -= 1
        logger.debug("Resend countdown finished")
