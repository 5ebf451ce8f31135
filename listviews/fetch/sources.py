"""Data-source contract, the on-disk fixture source and page collection."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence

from listviews.common.constants import DETAIL_SOURCE, PRIMARY_SOURCE
from listviews.common.errors import FetchError
from listviews.common.fields import as_text, get_field
from listviews.common.fs import read_json_if_exists
from listviews.common.logging import log_event

RawRecord = Mapping[str, Any]
PageFetcher = Callable[[int, int], "tuple[list[RawRecord], bool]"]


class DataSource(Protocol):
    def list_primary(self, filter_params: Mapping[str, str] | None = None) -> list[RawRecord]: ...

    def list_secondary(self, source_name: str, ids_or_all: Sequence[str] | None = None) -> list[RawRecord]: ...

    def get_detail(self, key: str) -> RawRecord | None: ...


def _rows(payload: Any, path: Path) -> list[RawRecord]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise FetchError(f"Fixture {path} must hold a JSON array")
    return [row for row in payload if isinstance(row, Mapping)]


class FixtureSource:
    """A ``DataSource`` reading JSON fixtures from ``<root>/<feature>/``.

    ``primary.json`` is required. Secondary collections live in ``<name>.json`` and
    details in ``details/<key>.json``; missing files read as empty.
    Primary filter parameters are matched against record fields of the same name;
    parameters naming no record field are accepted and ignored.
    """

    def __init__(self, root: Path, feature: str) -> None:
        self.base = root / feature
        self.calls: list[tuple[str, Any]] = []

    def list_primary(self, filter_params: Mapping[str, str] | None = None) -> list[RawRecord]:
        params = dict(filter_params or {})
        self.calls.append((PRIMARY_SOURCE, params))
        path = self.base / "primary.json"
        if not path.exists():
            raise FetchError(f"Fixture not found: {path}")
        rows = _rows(read_json_if_exists(path), path)
        for key, value in params.items():
            rows = [row for row in rows if key not in row or as_text(get_field(row, key)) == value]
        return rows

    def list_secondary(self, source_name: str, ids_or_all: Sequence[str] | None = None) -> list[RawRecord]:
        self.calls.append((source_name, ids_or_all))
        path = self.base / f"{source_name}.json"
        return _rows(read_json_if_exists(path), path)

    def get_detail(self, key: str) -> RawRecord | None:
        self.calls.append((DETAIL_SOURCE, key))
        payload = read_json_if_exists(self.base / DETAIL_SOURCE / f"{key}.json")
        return payload if isinstance(payload, Mapping) else None


def collect_pages(
    fetch_page: PageFetcher,
    *,
    page_size: int,
    max_pages: int,
    logger: logging.Logger | None = None,
    source: str | None = None,
) -> list[RawRecord]:
    """Concatenate pages until the endpoint reports no more rows.

    ``fetch_page(page_number, page_size)`` returns the page rows and a ``has_more``
    flag. Stopping at ``max_pages`` with rows outstanding is logged as a truncation.
    """
    rows: list[RawRecord] = []
    for page_number in range(1, max_pages + 1):
        page_rows, has_more = fetch_page(page_number, page_size)
        rows.extend(page_rows)
        if not has_more or not page_rows:
            return rows
    log_event(
        logger,
        "page limit reached, remaining rows dropped",
        level=logging.WARNING,
        source=source,
        event="PAGES_TRUNCATED",
        status="warn",
        rows_out=len(rows),
    )
    return rows
