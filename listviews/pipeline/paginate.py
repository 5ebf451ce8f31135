"""Fixed-size page slicing."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Sequence, TypeVar

from listviews.common.constants import DEFAULT_PAGE_SIZE

T = TypeVar("T")


@dataclass(frozen=True)
class PageState:
    number: int = 1
    size: int = DEFAULT_PAGE_SIZE

    def reset(self) -> "PageState":
        return self if self.number == 1 else replace(self, number=1)


def total_pages(count: int, size: int) -> int:
    if size <= 0:
        raise ValueError(f"page size must be positive, got {size}")
    return max(1, math.ceil(count / size))


def paginate(records: Sequence[T], page: int, size: int) -> list[T]:
    """Return page ``page`` (1-based); out-of-range pages are empty."""
    if size <= 0:
        raise ValueError(f"page size must be positive, got {size}")
    if page < 1:
        return []
    start = (page - 1) * size
    return list(records[start : start + size])
