import json
import logging
from pathlib import Path

import pytest

from listviews.common.errors import FetchError
from listviews.fetch.sources import FixtureSource, collect_pages


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def _write(path: Path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_fixture_source_reads_primary_secondary_and_details(tmp_path: Path):
    _write(tmp_path / "leads" / "primary.json", [{"user_id": "u-1", "country": "IN"}, {"user_id": "u-2", "country": "NG"}])
    _write(tmp_path / "leads" / "countries.json", [{"code": "IN", "name": "India"}])
    _write(tmp_path / "leads" / "details" / "u-1.json", {"note": "called"})
    source = FixtureSource(tmp_path, "leads")

    assert [row["user_id"] for row in source.list_primary({"country": "NG"})] == ["u-2"]
    assert len(source.list_primary({"date_filter": "7d"})) == 2
    assert source.list_secondary("countries") == [{"code": "IN", "name": "India"}]
    assert source.list_secondary("missing") == []
    assert source.get_detail("u-1") == {"note": "called"}
    assert source.get_detail("u-2") is None
    assert source.calls[0] == ("primary", {"country": "NG"})


def test_fixture_source_requires_primary(tmp_path: Path):
    with pytest.raises(FetchError):
        FixtureSource(tmp_path, "licenses").list_primary()


def test_fixture_source_rejects_non_array_payload(tmp_path: Path):
    _write(tmp_path / "licenses" / "primary.json", {"licenses": []})
    with pytest.raises(FetchError):
        FixtureSource(tmp_path, "licenses").list_primary()


def test_collect_pages_stops_when_no_more_rows():
    requested = []

    def fetch_page(page, size):
        requested.append((page, size))
        return [{"n": page}], page < 3

    rows = collect_pages(fetch_page, page_size=50, max_pages=10)

    assert rows == [{"n": 1}, {"n": 2}, {"n": 3}]
    assert requested == [(1, 50), (2, 50), (3, 50)]


def test_collect_pages_logs_truncation_at_page_limit():
    logger = logging.getLogger("listviews.test_sources")
    logger.setLevel(logging.INFO)
    handler = ListHandler()
    logger.addHandler(handler)
    try:
        rows = collect_pages(lambda page, size: ([{"n": page}], True), page_size=1, max_pages=2, logger=logger, source="licenses")
    finally:
        logger.removeHandler(handler)

    assert len(rows) == 2
    assert [record.event for record in handler.records] == ["PAGES_TRUNCATED"]
    assert handler.records[0].levelno == logging.WARNING
