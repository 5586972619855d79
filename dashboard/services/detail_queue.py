from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable

from client.models import ActivityRecord
from services.cache import DetailCache

LOGGER = logging.getLogger(__name__)

DetailFetcher = Callable[[str], Awaitable[list[ActivityRecord]]]
UpdateListener = Callable[[str], None]


class DetailFetchQueue:
    """FIFO of pending timeline fetches drained by at most ``max_concurrency`` tasks.

    ``request`` is the only entry point. A key that is cached-fresh, in flight
    or already queued is never queued again. All bookkeeping happens on the
    event loop between awaits, so the ``in_flight`` counter is the only gate.
    """

    def __init__(
        self,
        fetcher: DetailFetcher,
        cache: DetailCache[list[ActivityRecord]],
        *,
        max_concurrency: int = 3,
        on_update: UpdateListener | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.fetcher = fetcher
        self.cache = cache
        self.max_concurrency = max_concurrency
        self.on_update = on_update
        self.in_flight = 0
        self.peak_in_flight = 0
        self._queue: deque[str] = deque()
        self._queued: set[str] = set()
        self._loading: set[str] = set()
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False

    @property
    def pending(self) -> list[str]:
        return list(self._queue)

    def is_loading(self, key: str) -> bool:
        return key in self._loading

    def is_queued(self, key: str) -> bool:
        return key in self._queued

    def request(self, key: str) -> list[ActivityRecord] | None:
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        if self._closed or key in self._loading or key in self._queued:
            return None
        self._queue.append(key)
        self._queued.add(key)
        self._idle.clear()
        self._drain()
        return None

    def _drain(self) -> None:
        while not self._closed and self.in_flight < self.max_concurrency and self._queue:
            key = self._queue.popleft()
            self._queued.discard(key)
            # Another row may have filled the entry while this key waited.
            if self.cache.is_fresh(key):
                self._notify(key)
                continue
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            self._loading.add(key)
            self._tasks[key] = asyncio.create_task(self._run(key), name=f"detail:{key}")
        if self.in_flight == 0 and not self._queue:
            self._idle.set()

    async def _run(self, key: str) -> None:
        try:
            records = await self.fetcher(key)
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.warning(
                "Failed to load timeline for GR %s", key, exc_info=True, extra={"gr_no": key}
            )
        else:
            self.cache.set(key, list(records))
        finally:
            self._tasks.pop(key, None)
            self._loading.discard(key)
            self.in_flight -= 1
        self._notify(key)
        self._drain()

    def _notify(self, key: str) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(key)
        except Exception:
            LOGGER.exception("Timeline update listener failed for GR %s", key)

    async def wait_idle(self) -> None:
        await self._idle.wait()

    async def close(self) -> None:
        self._closed = True
        self._queue.clear()
        self._queued.clear()
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._idle.set()
