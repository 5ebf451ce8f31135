"""Fetch strategies: filter on the server or filter the full dataset locally."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from listviews.common.constants import ALL
from listviews.common.errors import ContractError
from listviews.common.fields import as_text
from listviews.pipeline.filters import FilterState

_COMPOSITE = (Mapping, list, tuple, set, frozenset)


@dataclass(frozen=True)
class ClientFilteredFetch:
    """The primary fetch is unparameterised; every filter runs locally."""

    name: str = "client"

    def params(self, state: FilterState) -> dict[str, str]:
        return {}

    def needs_refetch(self, old: FilterState, new: FilterState) -> bool:
        return False


def _flat(key: str, value: Any) -> str:
    if isinstance(value, _COMPOSITE):
        raise ContractError(f"Server filter {key!r} must be a flat value, got {type(value).__name__}")
    return as_text(value)


@dataclass(frozen=True)
class ServerFilteredFetch:
    """Forwards the named server filters verbatim as flat string parameters."""

    server_keys: tuple[str, ...]
    name: str = "server"

    def params(self, state: FilterState) -> dict[str, str]:
        out: dict[str, str] = {}
        for key in self.server_keys:
            text = _flat(key, state.server.get(key))
            if text and text != ALL:
                out[key] = text
        return out

    def needs_refetch(self, old: FilterState, new: FilterState) -> bool:
        return self.params(old) != self.params(new)


FetchStrategy = ClientFilteredFetch | ServerFilteredFetch
