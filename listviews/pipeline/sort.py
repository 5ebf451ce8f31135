"""Single-key sorting, the three-state sort toggle and the tiered default order."""

from __future__ import annotations

import locale
import math
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Optional, TypeVar

from listviews.common.fields import get_field, is_blank, safe_float

T = TypeVar("T")

Direction = Literal["asc", "desc"]
DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class SortState:
    key: Optional[str] = None
    direction: Direction = "desc"

    @property
    def is_default(self) -> bool:
        return self.key is None


def toggle_sort(state: SortState, key: str) -> SortState:
    """Cycle the sort on ``key``: unset, descending, ascending, unset."""
    if state.key != key:
        return SortState(key=key, direction="desc")
    if state.direction == "desc":
        return SortState(key=key, direction="asc")
    return SortState()


def _sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    # strxfrm rejects embedded NULs.
    return (1, locale.strxfrm(str(value).replace("\x00", "")))


def sort_records(records: Iterable[T], state: SortState) -> list[T]:
    """Stable sort on ``state.key``; missing values go last in either direction."""
    items = list(records)
    if state.key is None:
        return items
    present: list[tuple[tuple[int, Any], T]] = []
    missing: list[T] = []
    for record in items:
        value = get_field(record, state.key)
        if is_blank(value) or (isinstance(value, float) and value != value):
            missing.append(record)
        else:
            present.append((_sort_key(value), record))
    present.sort(key=lambda pair: pair[0], reverse=state.direction == "desc")
    return [record for _, record in present] + missing


def tiered_sort(records: Iterable[T], *, tier_field: str, score_field: str | None, top_tier: int = 0) -> list[T]:
    """Order by tier ascending, then by score descending inside ``top_tier`` only.

    Records outside the top tier keep their input order relative to each other.
    """
    buckets: dict[float, list[T]] = {}
    for record in records:
        tier = safe_float(get_field(record, tier_field), math.inf)
        buckets.setdefault(tier, []).append(record)

    out: list[T] = []
    for tier in sorted(buckets):
        bucket = buckets[tier]
        if tier == top_tier and score_field is not None:
            scored = [r for r in bucket if safe_float(get_field(r, score_field)) is not None]
            unscored = [r for r in bucket if safe_float(get_field(r, score_field)) is None]
            scored.sort(key=lambda r: safe_float(get_field(r, score_field)), reverse=True)
            bucket = scored + unscored
        out.extend(bucket)
    return out
