from __future__ import annotations

import math

import pytest

from services.pagination import Paginator


def test_out_of_range_navigation_is_rejected() -> None:
    paginator = Paginator(page_size=10)
    paginator.update_total(45)
    assert paginator.total_pages == 5

    assert paginator.go_to(7) is False
    assert paginator.current_page == 1
    assert paginator.go_to(0) is False
    assert paginator.go_to(5) is True
    assert paginator.current_page == 5
    assert paginator.has_next is False


def test_shrinking_total_clamps_page() -> None:
    paginator = Paginator(page_size=10)
    paginator.update_total(45)
    paginator.go_to(5)

    assert paginator.update_total(21) is True
    assert paginator.current_page == 3

    assert paginator.update_total(0) is True
    assert paginator.current_page == 1
    assert paginator.total_pages == 0
    assert paginator.update_total(0) is False


@pytest.mark.parametrize("total", [0, 1, 9, 10, 11, 45, 99, 100, 101])
def test_page_always_within_bounds_after_settling(total: int) -> None:
    paginator = Paginator(page_size=10)
    paginator.update_total(250)
    paginator.go_to(25)

    paginator.update_total(total)

    upper = max(math.ceil(total / 10), 1)
    assert 1 <= paginator.current_page <= upper


def test_navigation_listener_and_window() -> None:
    pages: list[int] = []
    paginator = Paginator(page_size=10, on_navigate=pages.append)
    paginator.update_total(23)

    assert paginator.window() == (1, 10)
    paginator.next()
    paginator.next()
    assert paginator.window() == (21, 23)
    assert paginator.next() is False
    paginator.previous()
    assert pages == [2, 3, 2]

    paginator.reset()
    assert paginator.current_page == 1
    assert Paginator(page_size=10).window() == (0, 0)


def test_page_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Paginator(page_size=0)
