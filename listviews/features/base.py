"""Declarative description of one list-view feature."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence

from listviews.common.constants import DEFAULT_PAGE_SIZE, DETAIL_SOURCE
from listviews.fetch.strategies import ClientFilteredFetch, FetchStrategy
from listviews.pipeline.enrich import Join, Lookups, RawRecord
from listviews.pipeline.export import Column, export_rows
from listviews.pipeline.filters import FilterSpec
from listviews.pipeline.sort import tiered_sort


def record_to_dict(record: Any) -> dict[str, Any]:
    if is_dataclass(record) and not isinstance(record, type):
        return asdict(record)
    return dict(record)


@dataclass(frozen=True)
class Feature:
    name: str
    key_paths: tuple[str, ...]
    build: Callable[[RawRecord, Lookups], Any]
    filter_spec: FilterSpec
    strategy: FetchStrategy = field(default_factory=ClientFilteredFetch)
    joins: Mapping[str, Join] = field(default_factory=dict)
    tier_field: str = "status_tier"
    score_field: str | None = None
    sortable: tuple[str, ...] = ()
    export_columns: tuple[str | Column, ...] = ()
    export_prefix: str | None = None
    export_sheet: str = "Sheet1"
    detail_keys: Callable[[Sequence[Any]], Iterable[str]] | None = None
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def secondary_sources(self) -> tuple[str, ...]:
        return tuple(name for name in self.joins if name != DETAIL_SOURCE)

    def default_order(self, records: Iterable[Any]) -> list[Any]:
        return tiered_sort(records, tier_field=self.tier_field, score_field=self.score_field)

    def export_rows(self, records: Iterable[Any]) -> list[dict[str, Any]]:
        return export_rows(records, self.export_columns)
