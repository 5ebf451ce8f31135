import pytest

from listviews.common.constants import PRIMARY_SOURCE
from listviews.common.errors import FetchError
from listviews.features import applicants
from listviews.pipeline.filters import FilterState
from listviews.pipeline.view import ListView


def _raw(contact_id, status, **overrides):
    row = {
        "contact_id": contact_id,
        "name": f"Applicant {contact_id}",
        "email": f"{contact_id}@example.org",
        "nationality": "India (IN)",
        "gender": "Female",
        "status": status,
        "standardised_test": "GMAT",
        "standardised_test_score": "700",
        "ug_completion_year": 2021,
        "ug_scale": "4",
        "ug_score": "3.5",
        "work_experience": "3",
    }
    row.update(overrides)
    return row


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Winners", "winner"),
        ("winner", "winner"),
        ("ON_HOLD", "onhold"),
        ("onhold", "onhold"),
        ("Shortlisted", "shortlisted"),
        ("recommended", "recommended"),
        ("rejected", "rejected"),
        ("withdrawn", "pending"),
        (None, "pending"),
    ],
)
def test_normalize_status(raw, expected):
    assert applicants.normalize_status(raw) == expected


def test_build_applicant_cleans_country_and_parses_numbers():
    record = applicants.build_applicant(_raw("c-1", "Recommended", nationality="GH", work_experience="n/a"), {})

    assert record.nationality == "Ghana"
    assert record.country_code == "GH"
    assert record.flag == "\U0001F1EC\U0001F1ED"
    assert record.is_recommended is True
    assert (record.status, record.status_tier) == ("recommended", 2)
    assert record.test_score == 700.0
    assert record.work_experience is None


def test_status_tier_order():
    statuses = ["rejected", "pending", "onhold", "recommended", "shortlisted", "winner"]
    tiers = [applicants.build_applicant(_raw(str(i), s), {}).status_tier for i, s in enumerate(statuses)]
    assert tiers == [5, 4, 3, 2, 1, 0]


def test_test_score_domain_follows_single_selected_test():
    domains = applicants.applicant_range_domains
    assert domains(FilterState())["test_score"] == (0.0, 800.0)
    assert domains(FilterState(selections={"test_name": frozenset({"GRE"})}))["test_score"] == (260.0, 340.0)
    assert domains(FilterState(selections={"test_name": frozenset({"IELTS"})}))["test_score"] == (0.0, 9.0)
    assert domains(FilterState(selections={"test_name": frozenset({"GRE", "GMAT"})}))["test_score"] == (0.0, 800.0)
    assert domains(FilterState(selections={"test_name": frozenset({"SAT"})}))["test_score"] == (0.0, 800.0)
    assert domains(FilterState())["ug_score"] == (0.0, 4.0)
    assert domains(FilterState(selections={"ug_scale": frozenset({"10"})}))["ug_score"] == (0.0, 10.0)
    assert domains(FilterState())["work_experience"] == (0.0, 20.0)


def _loaded_view(rows):
    view = ListView(applicants.FEATURE)
    epoch = view.begin_epoch()
    view.apply_source(epoch, PRIMARY_SOURCE, rows)
    return view


def test_gre_full_range_keeps_every_gre_applicant():
    view = _loaded_view(
        [
            _raw("a", "pending", standardised_test="GRE", standardised_test_score="300"),
            _raw("b", "pending", standardised_test="GRE", standardised_test_score=""),
            _raw("c", "pending"),
        ]
    )

    view.set_filters(selections={"test_name": frozenset({"GRE"})}, ranges={"test_score": (260.0, 340.0)})
    assert [r.contact_id for r in view.filtered] == ["a", "b"]

    view.set_filters(ranges={"test_score": (290.0, 340.0)})
    assert [r.contact_id for r in view.filtered] == ["a"]


def test_default_order_ranks_winners_by_test_score():
    view = _loaded_view(
        [
            _raw("p1", "pending"),
            _raw("w-low", "winner", standardised_test_score="650"),
            _raw("s1", "shortlisted"),
            _raw("w-high", "winner", standardised_test_score="760"),
            _raw("p2", "pending"),
        ]
    )

    assert [r.contact_id for r in view.ordered] == ["w-high", "w-low", "s1", "p1", "p2"]


def test_search_covers_name_nationality_and_email():
    view = _loaded_view([_raw("a", "pending", nationality="Ghana"), _raw("b", "pending", email="someone@uni.edu")])

    view.set_search("ghana")
    assert [r.contact_id for r in view.filtered] == ["a"]
    view.set_search("UNI.EDU")
    assert [r.contact_id for r in view.filtered] == ["b"]


class FakeHttpClient:
    def __init__(self, payload):
        self.payload = payload

    def get_json(self, path, *, params=None, headers=None, timeout=None):
        return self.payload


def test_scholarship_source_requires_data_envelope():
    rows = [_raw("a", "pending")]
    assert applicants.ScholarshipSource(FakeHttpClient({"success": True, "data": {"applicants": rows}}), proxy="p").list_primary() == rows

    with pytest.raises(FetchError):
        applicants.ScholarshipSource(FakeHttpClient({"success": True}), proxy="p").list_primary()
