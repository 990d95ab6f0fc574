"""System clock adapter - Implements Clock protocol with a monotonic source."""

import asyncio
import time


class SystemClock:
    """Monotonic wall time; immune to system clock adjustments."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
