# src/homban/board/runtime.py

"""Production implementations of the clock, sleeper and id generator ports."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, tzinfo

# Many timer APIs misbehave beyond ~49 days; stay well below that per single wait.
DEFAULT_MAX_CHUNK = timedelta(days=24)


class SystemClock:
    def __init__(self, tz: tzinfo | None = None) -> None:
        self._tz = tz

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now().astimezone()
        return datetime.now(self._tz)


class AsyncioSleeper:
    """
    asyncio-based Sleeper.

    Long (or infinite) delays are split into chunks of at most max_chunk, measured
    against the event loop's monotonic clock so wall-clock jumps don't shorten or
    stretch the wait.
    """

    def __init__(self, max_chunk: timedelta = DEFAULT_MAX_CHUNK) -> None:
        if max_chunk <= timedelta(0):
            raise ValueError("max_chunk must be positive")
        self._max_chunk_s = max_chunk.total_seconds()

    async def delay(self, duration: timedelta | None) -> None:
        loop = asyncio.get_running_loop()

        if duration is None:
            while True:
                await asyncio.sleep(self._max_chunk_s)

        deadline = loop.time() + max(0.0, duration.total_seconds())
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return
            await asyncio.sleep(min(remaining, self._max_chunk_s))


class UuidGenerator:
    def new_id(self) -> str:
        return str(uuid.uuid4())
