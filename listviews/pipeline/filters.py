"""Filter state and composable record predicates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, TypeVar, Union

from listviews.common.constants import ALL
from listviews.common.fields import as_text, get_field, safe_float

T = TypeVar("T")

Predicate = Callable[[Any], bool]
Range = tuple[float, float]
RangeDomains = Union[Mapping[str, Range], Callable[["FilterState"], Mapping[str, Range]]]


@dataclass(frozen=True)
class FilterState:
    category: str = ALL
    query: str = ""
    ranges: Mapping[str, Range] = field(default_factory=dict)
    selections: Mapping[str, frozenset[str]] = field(default_factory=dict)
    server: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FilterSpec:
    category_field: Optional[str] = None
    search_fields: tuple[str, ...] = ()
    range_domains: RangeDomains = field(default_factory=dict)
    selection_fields: tuple[str, ...] = ()
    # Selections that steer range domains instead of restricting membership.
    option_fields: tuple[str, ...] = ()

    def domains(self, state: FilterState) -> Mapping[str, Range]:
        if callable(self.range_domains):
            return self.range_domains(state)
        return self.range_domains


def _as_key(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return as_text(value)


def _as_range(value: Any) -> Range | None:
    if isinstance(value, str):
        lo, sep, hi = value.partition(":")
        if not sep:
            return None
        value = (lo, hi)
    try:
        lo, hi = value
    except (TypeError, ValueError):
        return None
    lo_f, hi_f = safe_float(lo), safe_float(hi)
    if lo_f is None or hi_f is None:
        return None
    return (lo_f, hi_f)


def normalize_filters(raw: Mapping[str, Any], *, strict: bool = False) -> FilterState:
    """Coerce loosely-typed filter input into a ``FilterState``.

    Unparseable ranges are dropped, or raise ``ValueError`` when ``strict``.
    Server values pass through untouched so the fetch strategy can check them.
    """
    category = as_text(raw.get("category")) or ALL
    query = as_text(raw.get("query"))

    ranges: dict[str, Range] = {}
    for name, value in (raw.get("ranges") or {}).items():
        bounds = _as_range(value)
        if bounds is None:
            if strict:
                raise ValueError(f"Range for {name} must be LO:HI numbers, got {value!r}")
            continue
        ranges[str(name)] = bounds

    selections: dict[str, frozenset[str]] = {}
    for name, values in (raw.get("selections") or {}).items():
        if isinstance(values, str):
            values = values.split(",")
        picked = frozenset(_as_key(v) for v in values or [] if not isinstance(v, str) or v.strip())
        if picked:
            selections[str(name)] = picked

    server = {str(name): value for name, value in (raw.get("server") or {}).items() if value is not None}
    return FilterState(category=category, query=query, ranges=ranges, selections=selections, server=server)


def category_predicate(field_name: str, selected: str | None) -> Predicate | None:
    if not selected or selected == ALL:
        return None
    wanted = _as_key(selected)
    return lambda record: _as_key(get_field(record, field_name)) == wanted


def search_predicate(query: str | None, fields: Sequence[str]) -> Predicate | None:
    needle = as_text(query).lower()
    if not needle or not fields:
        return None

    def _matches(record: Any) -> bool:
        return any(needle in as_text(get_field(record, name)).lower() for name in fields)

    return _matches


def range_predicate(field_name: str, bounds: Range | None, domain: Range) -> Predicate | None:
    """Inclusive range test; a range covering the whole domain applies no restriction."""
    if bounds is None:
        return None
    lo, hi = bounds
    if lo <= domain[0] and hi >= domain[1]:
        return None

    def _within(record: Any) -> bool:
        value = safe_float(get_field(record, field_name))
        if value is None:
            return False
        return lo <= value <= hi

    return _within


def membership_predicate(field_name: str, selected: Iterable[str] | None) -> Predicate | None:
    wanted = frozenset(_as_key(v) for v in selected or ())
    if not wanted:
        return None
    return lambda record: _as_key(get_field(record, field_name)) in wanted


def build_predicates(spec: FilterSpec, state: FilterState) -> list[Predicate]:
    candidates: list[Predicate | None] = []
    if spec.category_field:
        candidates.append(category_predicate(spec.category_field, state.category))
    candidates.append(search_predicate(state.query, spec.search_fields))
    for name, domain in spec.domains(state).items():
        candidates.append(range_predicate(name, state.ranges.get(name), domain))
    for name in spec.selection_fields:
        candidates.append(membership_predicate(name, state.selections.get(name)))
    return [predicate for predicate in candidates if predicate is not None]


def apply_filters(records: Iterable[T], predicates: Sequence[Predicate]) -> list[T]:
    return [record for record in records if all(predicate(record) for predicate in predicates)]


def validate_filters(spec: FilterSpec, state: FilterState) -> None:
    """Reject ranges and selections on fields the feature cannot filter by."""
    domains = spec.domains(state)
    unknown_ranges = sorted(set(state.ranges) - set(domains))
    if unknown_ranges:
        raise ValueError(f"No range filter for: {', '.join(unknown_ranges)}")
    known = set(spec.selection_fields) | set(spec.option_fields)
    unknown_selections = sorted(set(state.selections) - known)
    if unknown_selections:
        raise ValueError(f"No selection filter for: {', '.join(unknown_selections)}")
