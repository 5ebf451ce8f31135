"""Scholarship applicants with workflow-status tiers and score range filters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from listviews.common.errors import ContractError, FetchError
from listviews.common.fields import as_text, get_field, safe_float, safe_int
from listviews.common.formatting import clean_country_name, country_code, flag_emoji
from listviews.common.http import HttpClient
from listviews.features.base import Feature
from listviews.pipeline.enrich import Lookups, RawRecord, assign_status_tier, natural_key
from listviews.pipeline.filters import FilterSpec, FilterState, Range

KEY_PATHS = ("contact_id", "id")
WORKFLOW_STATUSES = ("pending", "shortlisted", "rejected", "recommended")
TIER_ORDER = ("winner", "shortlisted", "recommended", "onhold", "pending", "rejected")
TEST_SCORE_DOMAINS: dict[str, Range] = {
    "GMAT": (200.0, 800.0),
    "GRE": (260.0, 340.0),
    "TOEFL": (0.0, 120.0),
    "IELTS": (0.0, 9.0),
}
DEFAULT_TEST_SCORE_DOMAIN: Range = (0.0, 800.0)
UG_SCORE_DOMAINS: dict[str, Range] = {"4": (0.0, 4.0), "10": (0.0, 10.0)}
DEFAULT_UG_SCALE = "4"
WORK_EXPERIENCE_DOMAIN: Range = (0.0, 20.0)


@dataclass(frozen=True)
class ApplicantRecord:
    contact_id: str
    name: str
    email: str
    nationality: str
    country_code: str
    flag: str
    gender: str
    status: str
    status_tier: int
    is_recommended: bool
    award_name: str | None
    test_name: str
    test_score: float | None
    test_display: str
    ug_completion_year: int | None
    ug_scale: str
    ug_score: float | None
    ug_gpa_display: str
    work_experience: float | None
    round: int | None


def normalize_status(status: Any) -> str:
    normalized = as_text(status).lower()
    if normalized in ("winner", "winners"):
        return "winner"
    if normalized in ("on_hold", "onhold"):
        return "onhold"
    if normalized in WORKFLOW_STATUSES:
        return normalized
    return "pending"


def build_applicant(raw: RawRecord, lookups: Lookups) -> ApplicantRecord:
    nationality = clean_country_name(get_field(raw, "nationality"))
    code = country_code(nationality)
    status = normalize_status(get_field(raw, "status"))
    is_recommended = as_text(get_field(raw, "status")).lower() == "recommended"
    flags = {name: status == name for name in TIER_ORDER}
    flags["recommended"] = flags["recommended"] or is_recommended
    _, tier = assign_status_tier(flags, TIER_ORDER)

    return ApplicantRecord(
        contact_id=natural_key(raw, KEY_PATHS) or "",
        name=as_text(get_field(raw, "name")),
        email=as_text(get_field(raw, "email")),
        nationality=nationality,
        country_code=code,
        flag=flag_emoji(code),
        gender=as_text(get_field(raw, "gender")),
        status=status,
        status_tier=tier,
        is_recommended=is_recommended,
        award_name=get_field(raw, "award_name"),
        test_name=as_text(get_field(raw, "standardised_test")),
        test_score=safe_float(get_field(raw, "standardised_test_score")),
        test_display=as_text(get_field(raw, "standardised_test_display")),
        ug_completion_year=safe_int(get_field(raw, "ug_completion_year")),
        ug_scale=as_text(get_field(raw, "ug_scale")),
        ug_score=safe_float(get_field(raw, "ug_score")),
        ug_gpa_display=as_text(get_field(raw, "ug_gpa_display")),
        work_experience=safe_float(get_field(raw, "work_experience")),
        round=safe_int(get_field(raw, "round")),
    )


def applicant_range_domains(state: FilterState) -> dict[str, Range]:
    """Score domains for the current selections.

    The test-score domain follows the selected test only when exactly one is
    selected. ``ug_scale`` is a scale choice for the UG score slider, not a
    membership filter.
    """
    tests = state.selections.get("test_name") or frozenset()
    test_domain = DEFAULT_TEST_SCORE_DOMAIN
    if len(tests) == 1:
        test_domain = TEST_SCORE_DOMAINS.get(next(iter(tests)).upper(), DEFAULT_TEST_SCORE_DOMAIN)

    scales = state.selections.get("ug_scale") or frozenset()
    scale = next(iter(scales)) if len(scales) == 1 else DEFAULT_UG_SCALE
    return {
        "test_score": test_domain,
        "ug_score": UG_SCORE_DOMAINS.get(scale, UG_SCORE_DOMAINS[DEFAULT_UG_SCALE]),
        "work_experience": WORK_EXPERIENCE_DOMAIN,
    }


class ScholarshipSource:
    """``DataSource`` over the scholarship proxy; the list endpoint is unpaginated."""

    def __init__(
        self,
        client: HttpClient,
        *,
        proxy: str,
        page_size: int = 500,
        max_pages: int = 50,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.proxy = proxy

    def list_primary(self, filter_params: Mapping[str, str] | None = None) -> list[RawRecord]:
        payload = self.client.get_json(self.proxy, params={"action": "list"})
        data = get_field(payload, "data")
        if data is None:
            raise FetchError("Invalid response from server")
        return get_field(data, "applicants") or []

    def list_secondary(self, source_name: str, ids_or_all: Iterable[str] | None = None) -> list[RawRecord]:
        raise ContractError(f"Unknown applicants source: {source_name}")

    def get_detail(self, key: str) -> RawRecord | None:
        payload = self.client.get_json(self.proxy, params={"action": "profile", "contact_id": key})
        return get_field(payload, "data")


FEATURE = Feature(
    name="applicants",
    key_paths=KEY_PATHS,
    build=build_applicant,
    filter_spec=FilterSpec(
        category_field="status",
        search_fields=("name", "nationality", "email"),
        range_domains=applicant_range_domains,
        selection_fields=("test_name", "ug_completion_year", "nationality", "gender"),
        option_fields=("ug_scale",),
    ),
    score_field="test_score",
    sortable=("name", "nationality", "status_tier", "test_score", "ug_score", "work_experience", "ug_completion_year"),
    export_columns=(
        "name",
        "email",
        "nationality",
        "gender",
        "status",
        "test_name",
        "test_score",
        "ug_gpa_display",
        "ug_completion_year",
        "work_experience",
        "round",
    ),
    export_prefix="scholarship-applicants",
    export_sheet="Applicants",
    page_size=10,
)
