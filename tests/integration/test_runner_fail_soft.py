from __future__ import annotations

from pathlib import Path

import pytest

from listviews.common.constants import PRIMARY_SOURCE
from listviews.common.errors import FetchError
from listviews.features import licenses
from listviews.fetch.runner import load_view
from listviews.fetch.sources import FixtureSource
from listviews.pipeline.view import ERROR, READY, ListView

FIXTURES = Path("tests/fixtures")


class FlakySource(FixtureSource):
    def __init__(self, root: Path, feature: str, *, fail: tuple[str, ...] = (), fail_details: tuple[str, ...] = ()):
        super().__init__(root, feature)
        self.fail = fail
        self.fail_details = fail_details

    def list_primary(self, filter_params=None):
        if PRIMARY_SOURCE in self.fail:
            raise FetchError("licenses endpoint down")
        return super().list_primary(filter_params)

    def list_secondary(self, source_name, ids_or_all=None):
        if source_name in self.fail:
            raise FetchError(f"{source_name} endpoint down")
        return super().list_secondary(source_name, ids_or_all)

    def get_detail(self, key):
        if key in self.fail_details:
            raise FetchError(f"detail {key} down")
        return super().get_detail(key)


@pytest.mark.integration
def test_load_view_joins_every_source_from_fixtures():
    view = ListView(licenses.FEATURE)

    result = load_view(view, FixtureSource(FIXTURES, "licenses"), detail_batch_size=2)

    assert result.failed == {}
    assert sorted(result.loaded) == sorted([PRIMARY_SOURCE, licenses.ALLOCATIONS, licenses.TOP_PERFORMERS])
    assert result.details == 2
    assert view.status == READY
    assert [record.license_number for record in view.ordered] == ["L-005", "L-001", "L-004", "L-002", "L-003"]


@pytest.mark.integration
def test_failing_secondary_source_degrades_to_partial():
    view = ListView(licenses.FEATURE)

    result = load_view(view, FlakySource(FIXTURES, "licenses", fail=(licenses.TOP_PERFORMERS,)))

    assert result.failed == {licenses.TOP_PERFORMERS: "FETCH_ERROR"}
    assert result.partial is True
    assert view.status == READY
    assert len(view.records) == 5
    assert set(view.loaded_sources()) == {PRIMARY_SOURCE, licenses.ALLOCATIONS}


@pytest.mark.integration
def test_failing_detail_keys_leave_siblings_enriched():
    view = ListView(licenses.FEATURE)

    result = load_view(view, FlakySource(FIXTURES, "licenses", fail_details=("L-002",)))

    records = {record.license_number: record for record in view.records}
    assert result.failed == {}
    assert result.details == 1
    assert records["L-001"].display_best_score == 81.0


@pytest.mark.integration
def test_failing_primary_source_is_an_error():
    view = ListView(licenses.FEATURE)
    source = FlakySource(FIXTURES, "licenses", fail=(PRIMARY_SOURCE,))

    result = load_view(view, source)

    assert result.primary_failed is True
    assert view.status == ERROR
    assert not any(call[0] == "details" for call in source.calls)


@pytest.mark.integration
def test_results_from_a_superseded_load_are_ignored():
    view = ListView(licenses.FEATURE)

    class RefreshingSource(FixtureSource):
        def list_primary(self, filter_params=None):
            view.begin_epoch()
            return super().list_primary(filter_params)

    result = load_view(view, RefreshingSource(FIXTURES, "licenses"))

    assert result.superseded is True
    assert result.epoch_id != view.epoch.epoch_id
    assert view.records == []
    assert len(view.epoch.details) == 0
