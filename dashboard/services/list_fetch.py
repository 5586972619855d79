from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from client.models import FilterCriteria, PageResult
from core.errors import humanize_error

LOGGER = logging.getLogger(__name__)

PageFetcher = Callable[[FilterCriteria, int, int], Awaitable[PageResult]]
ResultListener = Callable[[PageResult, bool], None]
RequestProvider = Callable[[], tuple[FilterCriteria, int]]


class FetchState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    REFRESHING = "refreshing"
    SUCCESS = "success"
    ERROR = "error"
    UNMOUNTED = "unmounted"


class ListFetchController:
    """Loads one page of tickets plus stats and tracks the fetch state machine.

    Foreground loads set ``loading``; silent loads (the background timer) set
    ``background_refreshing`` and never clear the page on failure. Each
    request takes a generation number and only the latest generation may
    touch state when it completes.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        *,
        page_size: int = 10,
        refresh_interval_seconds: float = 300,
        on_result: ResultListener | None = None,
    ) -> None:
        self.fetch_page = fetch_page
        self.page_size = page_size
        self.refresh_interval_seconds = refresh_interval_seconds
        self.on_result = on_result
        self.state = FetchState.IDLE
        self.result = PageResult()
        self.error: str | None = None
        self.refresh_error: str | None = None
        self.loading = False
        self.background_refreshing = False
        self.discarded_responses = 0
        self._generation = 0
        self._last_request: tuple[FilterCriteria, int] = (FilterCriteria(), 1)
        self._refresh_task: asyncio.Task[None] | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def blocking(self) -> bool:
        return self.loading and not self.result.items

    @property
    def closed(self) -> bool:
        return self.state is FetchState.UNMOUNTED

    async def load(self, criteria: FilterCriteria, page: int, *, silent: bool = False) -> bool:
        if self.closed:
            return False
        if silent and self.loading:
            LOGGER.debug("Skipping background refresh while a foreground load is running")
            return False

        self._generation += 1
        generation = self._generation
        if silent:
            self.background_refreshing = True
            self.state = FetchState.REFRESHING
        else:
            self._last_request = (criteria, page)
            self.loading = True
            self.background_refreshing = False
            self.state = FetchState.LOADING

        try:
            result = await self.fetch_page(criteria, page, self.page_size)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not self._is_current(generation):
                return False
            self._finish()
            message = humanize_error(exc)
            self.state = FetchState.ERROR
            if silent:
                self.refresh_error = message
                LOGGER.warning(
                    "Background refresh failed: %s",
                    message,
                    extra={"generation": generation, "page": page, "silent": True},
                )
            else:
                self.error = message
                LOGGER.exception(
                    "Ticket list load failed",
                    extra={"generation": generation, "page": page, "silent": False},
                )
            return False

        if not self._is_current(generation):
            return False
        self._finish()
        self.result = result
        self.error = None
        self.refresh_error = None
        self.state = FetchState.SUCCESS
        if self.on_result is not None:
            self.on_result(result, silent)
        return True

    def _is_current(self, generation: int) -> bool:
        if self.closed:
            return False
        if generation != self._generation:
            self.discarded_responses += 1
            LOGGER.debug(
                "Discarding superseded ticket response",
                extra={"generation": generation},
            )
            return False
        return True

    def _finish(self) -> None:
        self.loading = False
        self.background_refreshing = False

    async def retry(self) -> bool:
        criteria, page = self._last_request
        return await self.load(criteria, page)

    def start_background_refresh(self, provider: RequestProvider) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = asyncio.create_task(
            self._refresh_loop(provider), name="ticket-list-refresh"
        )

    async def _refresh_loop(self, provider: RequestProvider) -> None:
        while not self.closed:
            await asyncio.sleep(self.refresh_interval_seconds)
            criteria, page = provider()
            await self.load(criteria, page, silent=True)

    async def stop_background_refresh(self) -> None:
        task = self._refresh_task
        self._refresh_task = None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def close(self) -> None:
        await self.stop_background_refresh()
        self.state = FetchState.UNMOUNTED
        self._finish()
