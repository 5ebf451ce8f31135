"""Fetch orchestration with fail-soft semantics."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable

from listviews.common.constants import DETAIL_BATCH_SIZE, PRIMARY_SOURCE
from listviews.common.errors import FetchError
from listviews.common.logging import log_event
from listviews.fetch.details import fetch_details_batched
from listviews.fetch.sources import DataSource
from listviews.pipeline.view import ListView


@dataclass(frozen=True)
class LoadResult:
    epoch_id: str
    loaded: tuple[str, ...] = ()
    failed: dict[str, str] = field(default_factory=dict)
    details: int = 0
    superseded: bool = False

    @property
    def primary_failed(self) -> bool:
        return PRIMARY_SOURCE in self.failed

    @property
    def partial(self) -> bool:
        return bool(self.failed) and not self.primary_failed


def _timed(fetch: Callable[[], Any]) -> tuple[Any, int]:
    started = time.perf_counter()
    rows = fetch()
    return rows, int((time.perf_counter() - started) * 1000)


def load_view(
    view: ListView,
    source: DataSource,
    *,
    logger: logging.Logger | None = None,
    detail_batch_size: int = DETAIL_BATCH_SIZE,
) -> LoadResult:
    """Start a new epoch on ``view`` and load every source it needs.

    Primary and secondary fetches run concurrently and are applied as they
    complete; a ``FetchError`` marks that source failed without aborting the
    others. Detail look-ups run once the sources have settled.
    """
    epoch_id = view.begin_epoch()
    feature = view.feature.name
    params = view.fetch_params()
    tasks: dict[str, Callable[[], Any]] = {PRIMARY_SOURCE: lambda: source.list_primary(params)}
    for name in view.feature.secondary_sources:
        tasks[name] = lambda name=name: source.list_secondary(name)

    loaded: list[str] = []
    failed: dict[str, str] = {}

    with ThreadPoolExecutor(max_workers=len(tasks)) as pool:
        futures = {}
        for name, fetch in tasks.items():
            log_event(logger, f"fetching {name}", epoch_id=epoch_id, feature=feature, source=name, event="FETCH_START", status="ok")
            futures[pool.submit(_timed, fetch)] = name

        for future in as_completed(futures):
            name = futures[future]
            try:
                rows, duration_ms = future.result()
            except FetchError as exc:
                failed[name] = exc.error_code
                view.fail_source(epoch_id, name, exc)
                log_event(
                    logger,
                    f"{name} fetch failed: {exc}",
                    level=logging.ERROR if name == PRIMARY_SOURCE else logging.WARNING,
                    epoch_id=epoch_id,
                    feature=feature,
                    source=name,
                    event="FETCH_FAIL",
                    status="error",
                    error_code=exc.error_code,
                )
                continue

            if not view.apply_source(epoch_id, name, rows):
                log_event(logger, f"ignoring late {name} result", epoch_id=epoch_id, feature=feature, source=name, event="FETCH_STALE", status="skipped")
                continue
            loaded.append(name)
            log_event(
                logger,
                f"{name} fetched",
                epoch_id=epoch_id,
                feature=feature,
                source=name,
                event="FETCH_OK",
                status="ok",
                duration_ms=duration_ms,
                rows_out=len(rows or []),
            )

    if not view.is_current(epoch_id):
        return LoadResult(epoch_id=epoch_id, loaded=tuple(loaded), failed=failed, superseded=True)

    fetched: dict[str, Any] = {}
    if PRIMARY_SOURCE not in failed:
        fetched = fetch_details_batched(
            view.detail_keys(),
            source.get_detail,
            view.epoch.details,
            batch_size=detail_batch_size,
            logger=logger,
            epoch_id=epoch_id,
            on_batch=lambda batch: view.apply_details(epoch_id, batch),
        )

    return LoadResult(
        epoch_id=epoch_id,
        loaded=tuple(loaded),
        failed=failed,
        details=sum(1 for value in fetched.values() if value is not None),
        superseded=not view.is_current(epoch_id),
    )
