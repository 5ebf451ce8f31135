"""List-view state container: raw sources in, one rendered page out.

Raw source sets and detail results are the only inputs that change over time.
Everything downstream (enriched records, the filtered set, its order and the
current page) is re-derived from those inputs on every read.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

from listviews.common.constants import DETAIL_SOURCE, PRIMARY_SOURCE
from listviews.common.ids import generate_epoch_id
from listviews.features.base import Feature, record_to_dict
from listviews.fetch.details import DetailCache
from listviews.pipeline import summary
from listviews.pipeline.enrich import RawRecord, build_index, enrich
from listviews.pipeline.filters import FilterState, apply_filters, build_predicates
from listviews.pipeline.paginate import PageState, paginate, total_pages
from listviews.pipeline.sort import DIRECTIONS, SortState, sort_records, toggle_sort

LOADING = "loading"
ERROR = "error"
EMPTY = "empty"
NO_MATCHES = "no_matches"
READY = "ready"


@dataclass(frozen=True)
class Epoch:
    epoch_id: str
    details: DetailCache = field(default_factory=DetailCache, compare=False)


class ListView:
    def __init__(self, feature: Feature, page_size: int | None = None) -> None:
        size = feature.page_size if page_size is None else page_size
        if size <= 0:
            raise ValueError(f"page size must be positive, got {size}")
        self.feature = feature
        self.filters = FilterState()
        self.sort = SortState()
        self.page = PageState(size=size)
        self.epoch = Epoch(generate_epoch_id())
        self._raw: dict[str, list[RawRecord]] = {}
        self.failures: dict[str, str] = {}

    def begin_epoch(self) -> str:
        self.epoch = Epoch(generate_epoch_id())
        self._raw = {}
        self.failures = {}
        self.page = self.page.reset()
        return self.epoch.epoch_id

    def is_current(self, epoch_id: str) -> bool:
        return epoch_id == self.epoch.epoch_id

    def _arrive(self, mutate) -> None:
        before = len(self.filtered)
        mutate()
        if len(self.filtered) != before:
            self.page = self.page.reset()

    def apply_source(self, epoch_id: str, name: str, rows: Iterable[RawRecord] | None) -> bool:
        if not self.is_current(epoch_id):
            return False

        def _store() -> None:
            self._raw[name] = list(rows or [])
            self.failures.pop(name, None)

        self._arrive(_store)
        return True

    def fail_source(self, epoch_id: str, name: str, error: Any) -> bool:
        if not self.is_current(epoch_id):
            return False
        self.failures[name] = str(error) or type(error).__name__
        return True

    def apply_details(self, epoch_id: str, results: Mapping[str, RawRecord | None]) -> bool:
        if not self.is_current(epoch_id):
            return False
        self._arrive(lambda: self.epoch.details.results.update(results))
        return True

    def loaded_sources(self) -> tuple[str, ...]:
        return tuple(self._raw)

    def _indexes(self) -> dict[str, dict[str, RawRecord]]:
        indexes: dict[str, dict[str, RawRecord]] = {}
        for name, join in self.feature.joins.items():
            if name == DETAIL_SOURCE:
                indexes[name] = {key: row for key, row in self.epoch.details.results.items() if row is not None}
            elif name in self._raw:
                indexes[name] = build_index(self._raw[name], join.source_paths)
        return indexes

    @property
    def records(self) -> list[Any]:
        if PRIMARY_SOURCE not in self._raw:
            return []
        return enrich(
            self._raw[PRIMARY_SOURCE],
            self._indexes(),
            key_paths=self.feature.key_paths,
            joins=self.feature.joins,
            build=self.feature.build,
        )

    @property
    def filtered(self) -> list[Any]:
        return apply_filters(self.records, build_predicates(self.feature.filter_spec, self.filters))

    @property
    def ordered(self) -> list[Any]:
        if self.sort.is_default:
            return self.feature.default_order(self.filtered)
        return sort_records(self.filtered, self.sort)

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.filtered), self.page.size)

    @property
    def page_records(self) -> list[Any]:
        return paginate(self.ordered, self.page.number, self.page.size)

    @property
    def status(self) -> str:
        if PRIMARY_SOURCE in self.failures:
            return ERROR
        if PRIMARY_SOURCE not in self._raw:
            return LOADING
        if not self._raw[PRIMARY_SOURCE]:
            return EMPTY
        if not self.filtered:
            return NO_MATCHES
        return READY

    def set_filters(self, state: FilterState | None = None, **changes: Any) -> bool:
        """Replace the filter state; returns True when the primary must be refetched."""
        new = state if state is not None else replace(self.filters, **changes)
        refetch = self.feature.strategy.needs_refetch(self.filters, new)
        self.filters = new
        self.page = self.page.reset()
        return refetch

    def set_search(self, query: str) -> None:
        self.set_filters(query=query)

    def toggle_sort(self, key: str) -> SortState:
        self._check_sortable(key)
        self.sort = toggle_sort(self.sort, key)
        self.page = self.page.reset()
        return self.sort

    def set_sort(self, key: str | None, direction: str = "desc") -> None:
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown sort direction: {direction}")
        if key is not None:
            self._check_sortable(key)
        self.sort = SortState(key=key, direction=direction) if key else SortState()
        self.page = self.page.reset()

    def _check_sortable(self, key: str) -> None:
        if self.feature.sortable and key not in self.feature.sortable:
            raise ValueError(f"{self.feature.name} cannot sort by {key}")

    def set_page(self, number: int) -> None:
        self.page = replace(self.page, number=number)

    def set_page_size(self, size: int) -> None:
        if size <= 0:
            raise ValueError(f"page size must be positive, got {size}")
        self.page = PageState(number=1, size=size)

    def fetch_params(self) -> dict[str, str]:
        return self.feature.strategy.params(self.filters)

    def detail_keys(self) -> list[str]:
        if self.feature.detail_keys is None:
            return []
        return list(self.feature.detail_keys(self.records))

    def export_rows(self) -> list[dict[str, Any]]:
        return self.feature.export_rows(self.ordered)

    def distribution(self, field_name: str) -> list[summary.DistributionItem]:
        return summary.distribution(self.filtered, field_name)

    def snapshot(self) -> dict[str, Any]:
        return {
            "feature": self.feature.name,
            "epoch_id": self.epoch.epoch_id,
            "status": self.status,
            "page": self.page.number,
            "page_size": self.page.size,
            "total_pages": self.total_pages,
            "total_records": len(self.filtered),
            "failed_sources": sorted(self.failures),
            "records": [record_to_dict(record) for record in self.page_records],
        }
