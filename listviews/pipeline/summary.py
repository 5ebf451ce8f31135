"""Value distributions and status counts over a filtered view."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from listviews.common.fields import as_text, get_field


@dataclass(frozen=True)
class DistributionItem:
    label: str
    count: int
    share: float


def _label(value: Any, placeholder: str) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return as_text(value) or placeholder


def distribution(records: Iterable[Any], field: str, *, placeholder: str = "Unknown") -> list[DistributionItem]:
    counts = Counter(_label(get_field(record, field), placeholder) for record in records)
    total = sum(counts.values())
    if not total:
        return []
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [DistributionItem(label=label, count=count, share=round(count * 100 / total, 1)) for label, count in ordered]


def toggle_selection(selected: Sequence[str], label: str) -> tuple[str, ...]:
    if label in selected:
        return tuple(item for item in selected if item != label)
    return (*selected, label)


def status_counts(records: Iterable[Any], field: str) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for record in records:
        counts[_label(get_field(record, field), "unknown")] += 1
    return dict(sorted(counts.items()))
