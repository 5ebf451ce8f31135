"""Join primary records with secondary sources by natural key."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence, TypeVar

from listviews.common.fields import as_text, lookup_first

T = TypeVar("T")

RawRecord = Mapping[str, Any]
Lookups = Mapping[str, "RawRecord | None"]


@dataclass(frozen=True)
class Join:
    """How one secondary source is keyed and which primary field points at it.

    ``primary_paths`` of ``None`` means the primary record's natural key.
    """

    source_paths: tuple[str, ...]
    primary_paths: tuple[str, ...] | None = None


def natural_key(record: Any, key_paths: Sequence[str]) -> str | None:
    key = as_text(lookup_first(record, key_paths))
    return key or None


def build_index(rows: Iterable[RawRecord], key_paths: Sequence[str]) -> dict[str, RawRecord]:
    index: dict[str, RawRecord] = {}
    for row in rows:
        key = natural_key(row, key_paths)
        if key is None or key in index:
            continue
        index[key] = row
    return index


def enrich(
    primary: Iterable[RawRecord],
    indexes: Mapping[str, Mapping[str, RawRecord]],
    *,
    key_paths: Sequence[str],
    joins: Mapping[str, Join],
    build: Callable[[RawRecord, Lookups], T],
) -> list[T]:
    """Build one enriched record per primary row.

    Every join named in ``joins`` is looked up; a source with no index yet (not
    loaded) or no matching key yields ``None`` for that lookup.
    """
    out: list[T] = []
    for raw in primary:
        own_key = natural_key(raw, key_paths)
        lookups: dict[str, RawRecord | None] = {}
        for name, join in joins.items():
            key = own_key if join.primary_paths is None else natural_key(raw, join.primary_paths)
            index = indexes.get(name) or {}
            lookups[name] = index.get(key) if key is not None else None
        out.append(build(raw, lookups))
    return out


def assign_status_tier(flags: Mapping[str, bool], order: Sequence[str]) -> tuple[str, int]:
    """Return the first true flag in priority ``order`` with its ordinal.

    Records with no advanced state fall to the last ordinal, named by the final
    entry of ``order`` which is never consulted as a flag.
    """
    *advanced, fallback = order
    for tier, name in enumerate(advanced):
        if flags.get(name):
            return name, tier
    return fallback, len(advanced)
