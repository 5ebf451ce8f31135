"""Get-or-default access to schemaless backend records.

Backend payloads are plain JSON objects whose keys drift between endpoints and
releases. Every read from a raw record goes through these helpers so a missing or
renamed field degrades to a default instead of raising.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Sequence


def _step(container: Any, name: str) -> Any:
    if container is None:
        return None
    if isinstance(container, Mapping):
        return container.get(name)
    if isinstance(container, (str, bytes, int, float, bool)):
        return None
    return getattr(container, name, None)


def get_field(record: Any, path: str, default: Any = None) -> Any:
    """Read a dotted ``path`` from a mapping or object, returning ``default`` on any miss."""
    value = record
    for name in path.split("."):
        value = _step(value, name)
        if value is None:
            return default
    return value


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return not value
    return False


def lookup_first(record: Any, paths: Iterable[str], default: Any = None) -> Any:
    for path in paths:
        value = get_field(record, path)
        if not is_blank(value):
            return value
    return default


def resolve_first(candidates: Sequence[tuple[Any, str]], default: Any = None) -> Any:
    """Return the first non-blank value of ordered ``(record, path)`` candidates.

    A ``None`` record stands for a lookup miss and is skipped.
    """
    for record, path in candidates:
        if record is None:
            continue
        value = get_field(record, path)
        if not is_blank(value):
            return value
    return default


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value)


def safe_float(value: Any, default: float | None = None) -> float | None:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def safe_int(value: Any, default: int | None = None) -> int | None:
    number = safe_float(value)
    if number is None or not math.isfinite(number):
        return default
    return int(number)


def join_name(*parts: Any) -> str:
    return " ".join(text for text in (as_text(part) for part in parts) if text)
