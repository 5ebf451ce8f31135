import pytest

from listviews.common.constants import DETAIL_SOURCE, PRIMARY_SOURCE
from listviews.features.base import Feature
from listviews.pipeline.enrich import Join
from listviews.pipeline.filters import FilterSpec
from listviews.pipeline.sort import SortState
from listviews.pipeline.view import EMPTY, ERROR, LOADING, NO_MATCHES, READY, ListView


def _build(raw, lookups):
    owner = lookups.get("owners") or {}
    detail = lookups.get(DETAIL_SOURCE) or {}
    return {
        "id": raw["id"],
        "score": raw.get("score"),
        "owner": owner.get("owner"),
        "note": detail.get("note"),
        "tier": 0 if owner else 1,
    }


FEATURE = Feature(
    name="widgets",
    key_paths=("id",),
    build=_build,
    filter_spec=FilterSpec(category_field="owner", search_fields=("id", "owner"), range_domains={"score": (0.0, 100.0)}),
    joins={"owners": Join(source_paths=("widget_id",)), DETAIL_SOURCE: Join(source_paths=())},
    tier_field="tier",
    score_field="score",
    export_columns=("id", "owner", "score"),
    detail_keys=lambda records: [r["id"] for r in records if r["owner"]],
    page_size=2,
)

ROWS = [{"id": f"w{i}", "score": i * 10} for i in range(1, 6)]


def test_status_progression():
    view = ListView(FEATURE)
    assert view.status == LOADING

    epoch = view.begin_epoch()
    view.apply_source(epoch, PRIMARY_SOURCE, [])
    assert view.status == EMPTY

    view.apply_source(epoch, PRIMARY_SOURCE, ROWS)
    assert view.status == READY

    view.set_search("nothing-matches")
    assert view.status == NO_MATCHES

    epoch = view.begin_epoch()
    view.fail_source(epoch, PRIMARY_SOURCE, RuntimeError("down"))
    assert view.status == ERROR


def test_late_arrivals_from_an_old_epoch_are_ignored():
    view = ListView(FEATURE)
    old = view.begin_epoch()
    new = view.begin_epoch()

    assert view.apply_source(old, PRIMARY_SOURCE, ROWS) is False
    assert view.fail_source(old, PRIMARY_SOURCE, "boom") is False
    assert view.apply_details(old, {"w1": {"note": "stale"}}) is False
    assert view.status == LOADING

    assert view.apply_source(new, PRIMARY_SOURCE, ROWS) is True
    assert len(view.records) == 5


def test_new_epoch_discards_sources_and_detail_cache():
    view = ListView(FEATURE)
    epoch = view.begin_epoch()
    view.apply_source(epoch, PRIMARY_SOURCE, ROWS)
    view.epoch.details.claim(["w1"])
    view.apply_details(epoch, {"w1": {"note": "hello"}})
    old_cache = view.epoch.details

    view.begin_epoch()

    assert view.records == []
    assert view.epoch.details is not old_cache
    assert "w1" not in view.epoch.details
    assert view.failures == {}


def test_secondary_arrival_re_derives_records():
    view = ListView(FEATURE)
    epoch = view.begin_epoch()
    view.apply_source(epoch, PRIMARY_SOURCE, ROWS)
    assert all(record["owner"] is None for record in view.records)

    view.apply_source(epoch, "owners", [{"widget_id": "w2", "owner": "ops"}])
    view.apply_details(epoch, {"w2": {"note": "checked"}, "w3": None})

    records = {record["id"]: record for record in view.records}
    assert records["w2"]["owner"] == "ops"
    assert records["w2"]["note"] == "checked"
    assert records["w3"]["note"] is None


def test_pagination_and_page_reset_on_changes():
    view = ListView(FEATURE)
    epoch = view.begin_epoch()
    view.apply_source(epoch, PRIMARY_SOURCE, ROWS)
    assert view.total_pages == 3

    view.set_page(3)
    assert [record["id"] for record in view.page_records] == ["w5"]

    view.toggle_sort("score")
    assert view.page.number == 1
    assert [record["id"] for record in view.page_records] == ["w5", "w4"]

    view.set_page(2)
    view.set_filters(ranges={"score": (20.0, 40.0)})
    assert view.page.number == 1
    assert view.total_pages == 2

    view.set_page(2)
    view.set_page_size(5)
    assert (view.page.number, view.page.size, view.total_pages) == (1, 5, 1)


def test_arrival_that_changes_the_filtered_count_resets_the_page():
    view = ListView(FEATURE)
    epoch = view.begin_epoch()
    view.apply_source(epoch, PRIMARY_SOURCE, ROWS)
    view.set_page(2)

    view.apply_source(epoch, "owners", [{"widget_id": "w1", "owner": "ops"}])
    assert view.page.number == 2

    view.set_filters(category="ops")
    view.set_page(2)
    view.apply_source(epoch, "owners", [{"widget_id": "w1", "owner": "ops"}, {"widget_id": "w2", "owner": "ops"}])
    assert len(view.filtered) == 2
    assert view.page.number == 1


def test_default_order_puts_owned_widgets_first_by_score():
    view = ListView(FEATURE)
    epoch = view.begin_epoch()
    view.apply_source(epoch, PRIMARY_SOURCE, ROWS)
    view.apply_source(epoch, "owners", [{"widget_id": "w1", "owner": "a"}, {"widget_id": "w4", "owner": "b"}])

    assert view.sort == SortState()
    assert [record["id"] for record in view.ordered] == ["w4", "w1", "w2", "w3", "w5"]


def test_export_rows_cover_every_page_of_the_filtered_view():
    view = ListView(FEATURE)
    epoch = view.begin_epoch()
    view.apply_source(epoch, PRIMARY_SOURCE, ROWS)
    view.set_filters(ranges={"score": (0.0, 30.0)})

    rows = view.export_rows()

    assert [row["Id"] for row in rows] == ["w1", "w2", "w3"]
    assert rows[0] == {"Id": "w1", "Owner": "", "Score": 10}


def test_snapshot_and_distribution():
    view = ListView(FEATURE)
    epoch = view.begin_epoch()
    view.apply_source(epoch, PRIMARY_SOURCE, ROWS)
    view.fail_source(epoch, "owners", RuntimeError("owners down"))

    snapshot = view.snapshot()

    assert snapshot["status"] == READY
    assert snapshot["failed_sources"] == ["owners"]
    assert snapshot["total_records"] == 5
    assert [record["id"] for record in snapshot["records"]] == ["w1", "w2"]
    assert view.distribution("owner")[0].label == "Unknown"
    assert view.detail_keys() == []


@pytest.mark.parametrize("size", [0, -3])
def test_page_size_must_be_positive_at_construction(size):
    with pytest.raises(ValueError):
        ListView(FEATURE, page_size=size)
    assert ListView(FEATURE).page.size == 2
