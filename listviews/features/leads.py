"""Premium profile leads, filtered on the server and joined with the country list."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from listviews.common.errors import ContractError
from listviews.common.fields import as_text, get_field, join_name, resolve_first, safe_int
from listviews.common.formatting import decode_text, flag_emoji, format_datetime, format_phone
from listviews.common.http import HttpClient
from listviews.features.base import Feature
from listviews.fetch.strategies import ServerFilteredFetch
from listviews.pipeline.enrich import Join, Lookups, RawRecord, assign_status_tier, natural_key
from listviews.pipeline.filters import FilterSpec

COUNTRIES = "countries"
KEY_PATHS = ("user_id", "id", "email")
SERVER_KEYS = ("filter_page", "program_id", "date_filter", "country")
TIER_ORDER = ("engaged", "browsing", "registered")


@dataclass(frozen=True)
class LeadRecord:
    lead_id: str
    name: str
    email: str
    phone: str
    country_code: str
    country_name: str
    flag: str
    start_year: str
    study_level: str
    subject_area: str
    page_views: int
    total_clicks: int
    programs_viewed: str
    utm_sources: str
    registration_date: str | None
    last_activity: str | None
    registered_on: str
    last_activity_on: str
    engagement: str
    engagement_tier: int


def build_lead(raw: RawRecord, lookups: Lookups) -> LeadRecord:
    country = lookups.get(COUNTRIES)
    code = as_text(get_field(raw, "country_of_residence"))
    page_views = safe_int(get_field(raw, "page_views"), 0)
    clicks = safe_int(get_field(raw, "total_clicks"), 0)
    engagement, tier = assign_status_tier({"engaged": clicks > 0, "browsing": page_views > 0}, TIER_ORDER)

    name = join_name(get_field(raw, "first_name"), get_field(raw, "last_name")) or as_text(get_field(raw, "email"))
    country_name = as_text(resolve_first([(raw, "country_name"), (country, "value")], default=code))
    flag_code = as_text(resolve_first([(raw, "flag_code")], default=code))

    return LeadRecord(
        lead_id=natural_key(raw, KEY_PATHS) or "",
        name=name,
        email=as_text(get_field(raw, "email")),
        phone=format_phone(get_field(raw, "phone"), code),
        country_code=code,
        country_name=country_name,
        flag=flag_emoji(flag_code),
        start_year=as_text(get_field(raw, "intended_pg_program_start_year")),
        study_level=as_text(get_field(raw, "intended_study_level")),
        subject_area=decode_text(as_text(get_field(raw, "intended_subject_area"))),
        page_views=page_views,
        total_clicks=clicks,
        programs_viewed=as_text(get_field(raw, "programs_viewed")),
        utm_sources=as_text(get_field(raw, "utm_sources")),
        registration_date=get_field(raw, "registration_date"),
        last_activity=get_field(raw, "last_activity"),
        registered_on=format_datetime(get_field(raw, "registration_date")),
        last_activity_on=format_datetime(get_field(raw, "last_activity")),
        engagement=engagement,
        engagement_tier=tier,
    )


class SchoolProfileSource:
    """``DataSource`` over the school-profile proxy.

    The leads list is returned in one response, so the paging settings are unused.
    """

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
        self.logger = logger

    def list_primary(self, filter_params: Mapping[str, str] | None = None) -> list[RawRecord]:
        payload = self.client.post_json(self.proxy, params={"action": "leads-list"}, body=dict(filter_params or {}))
        return get_field(payload, "data.res") or []

    def list_secondary(self, source_name: str, ids_or_all: Iterable[str] | None = None) -> list[RawRecord]:
        if source_name != COUNTRIES:
            raise ContractError(f"Unknown leads source: {source_name}")
        payload = self.client.get_json(self.proxy, params={"action": "leads-countries"})
        return get_field(payload, "data.countries") or []

    def get_detail(self, key: str) -> RawRecord | None:
        return None


FEATURE = Feature(
    name="leads",
    key_paths=KEY_PATHS,
    build=build_lead,
    filter_spec=FilterSpec(
        category_field="engagement",
        search_fields=("name", "email", "phone", "country_name"),
        selection_fields=("study_level", "start_year", "country_name"),
    ),
    strategy=ServerFilteredFetch(SERVER_KEYS),
    joins={COUNTRIES: Join(source_paths=("key",), primary_paths=("country_of_residence",))},
    tier_field="engagement_tier",
    score_field="total_clicks",
    sortable=("name", "email", "country_name", "page_views", "total_clicks", "registration_date", "last_activity"),
    export_columns=(
        ("Name", "name"),
        ("Phone", "phone"),
        ("Email", "email"),
        ("Country", "country_name"),
        ("Post Graduation Start Year", "start_year"),
        ("Study Level", "study_level"),
        ("Subject Area", "subject_area"),
        ("Page Views", "page_views"),
        ("Registered On", "registered_on"),
        ("Last Activity", "last_activity_on"),
        ("Programs Viewed", "programs_viewed"),
    ),
    export_prefix="premium-profile-leads",
    export_sheet="Leads",
    page_size=25,
)
