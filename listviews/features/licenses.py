"""Visa-prep licenses joined with allocations, top performers and allocation details."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from listviews.common.constants import DETAIL_SOURCE, PRIMARY_SOURCE
from listviews.common.errors import ContractError
from listviews.common.fields import as_text, get_field, is_blank, join_name, resolve_first, safe_float, safe_int
from listviews.common.http import HttpClient
from listviews.features.base import Feature
from listviews.fetch.sources import collect_pages
from listviews.pipeline.enrich import Join, Lookups, RawRecord, assign_status_tier, natural_key
from listviews.pipeline.filters import FilterSpec

ALLOCATIONS = "allocations"
TOP_PERFORMERS = "top_performers"
KEY_PATHS = ("license_number", "license_no", "id")
TIER_ORDER = ("used", "activated", "allocated", "available")
BEST_SCORE_DOMAIN = (0.0, 100.0)


@dataclass(frozen=True)
class LicenseRecord:
    license_number: str
    status: str
    status_tier: int
    is_allocated: bool
    is_activated: bool
    is_used: bool
    activation_status: str
    usage_status: str
    visa_status: str | None
    name: str | None
    alloc_email: str | None
    mobile: str | None
    tests_attempted: int
    display_best_score: float | None
    target_degree: str | None
    created_date: str | None
    allocated_at: str | None


def _full_name(record: RawRecord | None, first: str, last: str) -> str | None:
    if record is None:
        return None
    return join_name(get_field(record, first), get_field(record, last)) or None


def _first_present(*values: Any) -> Any:
    return next((value for value in values if not is_blank(value)), None)


def build_license(raw: RawRecord, lookups: Lookups) -> LicenseRecord:
    allocation = lookups.get(ALLOCATIONS)
    top = lookups.get(TOP_PERFORMERS)
    detail = lookups.get(DETAIL_SOURCE)

    license_email = get_field(raw, "email")
    is_allocated = not is_blank(license_email) or allocation is not None

    activation = as_text(
        resolve_first(
            [
                (detail, "license.activation_status"),
                (allocation, "license.activation_status"),
                (raw, "activation_status"),
            ],
            default="",
        )
    ).lower()
    usage = as_text(
        resolve_first(
            [
                (detail, "license.usage_status"),
                (allocation, "license.usage_status"),
                (raw, "usage_status"),
            ],
            default="",
        )
    ).lower()
    tests = safe_int(
        resolve_first(
            [
                (raw, "test_attempted"),
                (detail, "performance.total_sessions"),
                (top, "attempts"),
            ]
        ),
        0,
    )

    flags = {
        "used": usage == "used" or tests > 0,
        "activated": activation == "active",
        "allocated": is_allocated,
    }
    status, tier = assign_status_tier(flags, TIER_ORDER)

    name = _first_present(
        _full_name(allocation, "student.first_name", "student.last_name"),
        _full_name(detail, "allocation.student_first_name", "allocation.student_last_name"),
        _full_name(detail, "api_student.first_name", "api_student.last_name"),
        resolve_first([(raw, "student_name"), (top, "student_name"), (raw, "alloted_to")]),
    )
    alloc_email = resolve_first(
        [
            (allocation, "student.email"),
            (detail, "allocation.student_email"),
            (detail, "api_student.email"),
            (raw, "email"),
        ]
    )
    mobile = resolve_first(
        [
            (allocation, "student.phone"),
            (detail, "allocation.student_phone"),
            (detail, "api_student.mobile"),
            (raw, "mobile"),
        ]
    )
    best_score = safe_float(
        resolve_first(
            [
                (detail, "performance.best_overall_score"),
                (top, "best_score"),
            ]
        )
    )

    return LicenseRecord(
        license_number=natural_key(raw, KEY_PATHS) or "",
        status=status,
        status_tier=tier,
        is_allocated=is_allocated,
        is_activated=flags["activated"],
        is_used=flags["used"],
        activation_status=activation,
        usage_status=usage,
        visa_status=resolve_first([(detail, "api_student.visa_status")]),
        name=as_text(name) or None,
        alloc_email=as_text(alloc_email) or None,
        mobile=as_text(mobile) or None,
        tests_attempted=tests,
        display_best_score=best_score,
        target_degree=resolve_first([(detail, "api_student.target_degree"), (raw, "target_degree")]),
        created_date=resolve_first([(raw, "created_date")]),
        allocated_at=resolve_first([(allocation, "allocated_at"), (detail, "allocation.allocated_at")]),
    )


def allocated_keys(records: Sequence[LicenseRecord]) -> list[str]:
    return [record.license_number for record in records if record.is_allocated and record.license_number]


class VisaTutorSource:
    """``DataSource`` over the visa-tutor proxy."""

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
        self.page_size = page_size
        self.max_pages = max_pages
        self.logger = logger

    def _licenses_page(self, page: int, limit: int) -> tuple[list[RawRecord], bool]:
        payload = self.client.get_json(self.proxy, params={"action": "list", "page": page, "limit": limit})
        rows = get_field(payload, "data.licenses") or []
        total = safe_int(get_field(payload, "data.pagination.total_pages"), 1)
        return rows, page < total

    def _allocations_page(self, page: int, limit: int) -> tuple[list[RawRecord], bool]:
        payload = self.client.get_json(
            self.proxy,
            params={"action": ALLOCATIONS, "limit": limit, "offset": (page - 1) * limit},
        )
        rows = get_field(payload, "data.allocations") or []
        return rows, bool(get_field(payload, "pagination.has_more"))

    def list_primary(self, filter_params: Mapping[str, str] | None = None) -> list[RawRecord]:
        return collect_pages(
            self._licenses_page,
            page_size=self.page_size,
            max_pages=self.max_pages,
            logger=self.logger,
            source=PRIMARY_SOURCE,
        )

    def list_secondary(self, source_name: str, ids_or_all: Iterable[str] | None = None) -> list[RawRecord]:
        if source_name == ALLOCATIONS:
            return collect_pages(
                self._allocations_page,
                page_size=self.page_size,
                max_pages=self.max_pages,
                logger=self.logger,
                source=ALLOCATIONS,
            )
        if source_name == TOP_PERFORMERS:
            payload = self.client.get_json(self.proxy, params={"action": "stats"})
            return get_field(payload, "data.top_performers") or []
        raise ContractError(f"Unknown licenses source: {source_name}")

    def get_detail(self, key: str) -> RawRecord | None:
        payload = self.client.get_json(self.proxy, params={"action": "allocation", "license_no": key})
        return get_field(payload, "data")


FEATURE = Feature(
    name="licenses",
    key_paths=KEY_PATHS,
    build=build_license,
    filter_spec=FilterSpec(
        category_field="status",
        search_fields=("name", "alloc_email", "license_number", "mobile"),
        range_domains={"display_best_score": BEST_SCORE_DOMAIN},
        selection_fields=("activation_status", "usage_status", "visa_status"),
    ),
    joins={
        ALLOCATIONS: Join(source_paths=("license_no", "license_number")),
        TOP_PERFORMERS: Join(source_paths=("license_number", "license_no")),
        DETAIL_SOURCE: Join(source_paths=()),
    },
    score_field="display_best_score",
    sortable=(
        "license_number",
        "name",
        "alloc_email",
        "status_tier",
        "display_best_score",
        "tests_attempted",
        "created_date",
        "allocated_at",
    ),
    export_columns=(
        "license_number",
        "status",
        "name",
        "alloc_email",
        "mobile",
        "activation_status",
        "usage_status",
        "tests_attempted",
        "display_best_score",
        "visa_status",
    ),
    export_prefix="visa-prep-licenses",
    export_sheet="Licenses",
    detail_keys=allocated_keys,
    page_size=20,
)
