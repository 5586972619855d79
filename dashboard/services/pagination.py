from __future__ import annotations

import math
from collections.abc import Callable

NavigateListener = Callable[[int], None]


class Paginator:
    def __init__(self, page_size: int = 10, *, on_navigate: NavigateListener | None = None) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.page_size = page_size
        self.on_navigate = on_navigate
        self.current_page = 1
        self.total_count = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    def go_to(self, page: int) -> bool:
        if page < 1 or page > self.total_pages:
            return False
        self.current_page = page
        if self.on_navigate is not None:
            self.on_navigate(page)
        return True

    def next(self) -> bool:
        return self.go_to(self.current_page + 1)

    def previous(self) -> bool:
        return self.go_to(self.current_page - 1)

    def reset(self) -> None:
        self.current_page = 1

    def update_total(self, total_count: int) -> bool:
        """Record a new filtered total and clamp the page into range.

        Returns True when the current page had to move.
        """
        self.total_count = max(total_count, 0)
        upper = max(self.total_pages, 1)
        if self.current_page > upper:
            self.current_page = upper
            return True
        return False

    def window(self) -> tuple[int, int]:
        if self.total_count == 0:
            return (0, 0)
        start = (self.current_page - 1) * self.page_size + 1
        end = min(self.current_page * self.page_size, self.total_count)
        return (start, end)
