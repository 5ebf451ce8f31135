"""Epoch-scoped, batched detail look-ups."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable, Mapping

from listviews.common.constants import DETAIL_BATCH_SIZE, DETAIL_SOURCE
from listviews.common.logging import log_event

RawRecord = Mapping[str, Any]
DetailFetcher = Callable[[str], "RawRecord | None"]


class DetailCache:
    """Keys already fetched during one epoch, with their results.

    Never pruned; a refresh replaces the whole cache.
    """

    def __init__(self) -> None:
        self._claimed: set[str] = set()
        self.results: dict[str, RawRecord | None] = {}

    def claim(self, keys: Iterable[str]) -> list[str]:
        fresh: list[str] = []
        for key in keys:
            if key in self._claimed:
                continue
            self._claimed.add(key)
            fresh.append(key)
        return fresh

    def __contains__(self, key: object) -> bool:
        return key in self._claimed

    def __len__(self) -> int:
        return len(self._claimed)


def _batches(keys: list[str], size: int) -> Iterable[list[str]]:
    for start in range(0, len(keys), size):
        yield keys[start : start + size]


def fetch_details_batched(
    keys: Iterable[str],
    get_detail: DetailFetcher,
    cache: DetailCache,
    *,
    batch_size: int = DETAIL_BATCH_SIZE,
    logger: logging.Logger | None = None,
    epoch_id: str | None = None,
    on_batch: Callable[[dict[str, RawRecord | None]], Any] | None = None,
) -> dict[str, RawRecord | None]:
    """Fetch details for unclaimed ``keys`` in sequential waves of concurrent requests.

    A failing key maps to ``None`` and never aborts its siblings or later waves.
    ``on_batch`` receives each completed wave.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    pending = cache.claim(keys)
    fetched: dict[str, RawRecord | None] = {}
    if not pending:
        return fetched

    with ThreadPoolExecutor(max_workers=min(batch_size, len(pending))) as pool:
        for wave, batch in enumerate(_batches(pending, batch_size), start=1):
            futures = {key: pool.submit(get_detail, key) for key in batch}
            wait(futures.values())
            results: dict[str, RawRecord | None] = {}
            for key, future in futures.items():
                try:
                    results[key] = future.result()
                except Exception as exc:
                    results[key] = None
                    log_event(
                        logger,
                        f"detail look-up failed for {key}: {exc}",
                        level=logging.WARNING,
                        epoch_id=epoch_id,
                        source=DETAIL_SOURCE,
                        event="DETAIL_FAIL",
                        status="error",
                        error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
                    )
            log_event(
                logger,
                f"detail wave {wave} complete",
                epoch_id=epoch_id,
                source=DETAIL_SOURCE,
                event="DETAIL_BATCH",
                status="ok",
                attempt=wave,
                rows_in=len(batch),
                rows_out=sum(1 for value in results.values() if value is not None),
            )
            fetched.update(results)
            if on_batch is not None:
                on_batch(results)
    return fetched
