from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import aiohttp

LOGGER = logging.getLogger(__name__)


class DashboardError(RuntimeError):
    user_message: str = "An unexpected error occurred."

    def __str__(self) -> str:
        return self.user_message


@dataclass(slots=True)
class BackendError(DashboardError):
    user_message: str = "The ticket service could not be reached."
    status: int | None = None
    url: str | None = None


@dataclass(slots=True)
class ValidationError(DashboardError):
    user_message: str = "The provided input is not valid."


@dataclass(slots=True)
class NotMountedError(DashboardError):
    user_message: str = "The ticket list is not active."


def humanize_error(error: BaseException) -> str:
    if isinstance(error, DashboardError):
        return error.user_message
    if isinstance(error, asyncio.TimeoutError):
        return "The ticket service took too long to respond."
    if isinstance(error, aiohttp.ClientResponseError):
        return f"Failed to fetch: {error.status}"
    if isinstance(error, aiohttp.ClientError):
        return "Network error while contacting the ticket service."
    if isinstance(error, ValueError):
        return "The ticket service returned an unreadable response."
    LOGGER.debug("No friendly message for %s", type(error).__name__)
    return "Failed to load tickets."
