"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from listviews.common.constants import FEATURES
from listviews.common.errors import ConfigError


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_int(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{ctx} must be a positive integer")


def validate_dashboard_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"api", "paging", "details", "features"}
    _assert_required_keys(cfg, top_required, "dashboard config")
    _assert_no_unknown_keys(cfg, top_required, "dashboard config", allow_unknown)

    _assert_required_keys(cfg["api"], {"base_url", "token_env", "apikey_env", "timeout", "retry"}, "api")
    _assert_required_keys(cfg["api"]["timeout"], {"connect", "read"}, "api.timeout")
    _assert_required_keys(cfg["api"]["retry"], {"max_attempts"}, "api.retry")
    _assert_positive_int(cfg["api"]["retry"]["max_attempts"], "api.retry.max_attempts")

    _assert_required_keys(cfg["paging"], {"bulk_page_size", "max_pages"}, "paging")
    _assert_positive_int(cfg["paging"]["bulk_page_size"], "paging.bulk_page_size")
    _assert_positive_int(cfg["paging"]["max_pages"], "paging.max_pages")

    _assert_required_keys(cfg["details"], {"batch_size"}, "details")
    _assert_positive_int(cfg["details"]["batch_size"], "details.batch_size")

    _assert_required_keys(cfg["features"], set(FEATURES), "features")
    for name in FEATURES:
        feature_cfg = cfg["features"][name]
        _assert_required_keys(feature_cfg, {"proxy", "page_size"}, f"features.{name}")
        _assert_positive_int(feature_cfg["page_size"], f"features.{name}.page_size")

    return cfg
