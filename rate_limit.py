# rate_limit.py
import asyncio
import time


class FixedIntervalLimiter:
    """
    Serializes calls to one external API and spaces them by a fixed interval.

    Used as an async context manager around each outbound call:

        async with limiter:
            await client.get(...)

    Only one call runs inside the block at a time, and a call never starts
    less than `interval` seconds after the previous one finished.
    """

    def __init__(self, interval: float, clock=time.monotonic, sleep=asyncio.sleep):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_finished: float | None = None

    async def __aenter__(self):
        await self._lock.acquire()
        try:
            if self._last_finished is not None:
                delay = self._last_finished + self.interval - self._clock()
                if delay > 0:
                    await self._sleep(delay)
        except BaseException:
            self._lock.release()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self._last_finished = self._clock()
        self._lock.release()
        return False
