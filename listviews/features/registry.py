"""Feature lookup and HTTP source construction."""

from __future__ import annotations

import logging

from listviews.common.config_loader import DashboardConfig
from listviews.common.errors import ConfigError
from listviews.common.http import HttpClient
from listviews.features import applicants, leads, licenses
from listviews.features.base import Feature
from listviews.fetch.sources import DataSource

FEATURES: dict[str, Feature] = {
    licenses.FEATURE.name: licenses.FEATURE,
    leads.FEATURE.name: leads.FEATURE,
    applicants.FEATURE.name: applicants.FEATURE,
}

SOURCE_TYPES = {
    licenses.FEATURE.name: licenses.VisaTutorSource,
    leads.FEATURE.name: leads.SchoolProfileSource,
    applicants.FEATURE.name: applicants.ScholarshipSource,
}


def get_feature(name: str) -> Feature:
    try:
        return FEATURES[name]
    except KeyError as exc:
        raise ConfigError(f"Unknown feature: {name}") from exc


def http_source(name: str, client: HttpClient, cfg: DashboardConfig, *, logger: logging.Logger | None = None) -> DataSource:
    feature_cfg = cfg.feature(name)
    source_type = SOURCE_TYPES[get_feature(name).name]
    return source_type(
        client,
        proxy=feature_cfg["proxy"],
        page_size=int(cfg.paging["bulk_page_size"]),
        max_pages=int(cfg.paging["max_pages"]),
        logger=logger,
    )
