# clock.py
import asyncio
from datetime import datetime


class Clock:
    """Wall clock plus a sleep that gives up early once `stop` is set."""

    def now(self) -> datetime:
        return datetime.now()

    async def sleep(self, seconds: float, stop: asyncio.Event = None) -> bool:
        """Returns True if woken by the stop event instead of the timer."""
        if seconds <= 0:
            return bool(stop and stop.is_set())
        if stop is None:
            await asyncio.sleep(seconds)
            return False
        try:
            await asyncio.wait_for(stop.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False
