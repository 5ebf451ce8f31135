"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from listviews.common.errors import ConfigError
from listviews.common.fs import read_yaml
from listviews.common.schema import validate_dashboard_config

CONFIG_FILENAME = "dashboard.yml"


@dataclass(frozen=True)
class DashboardConfig:
    api: dict
    paging: dict
    details: dict
    features: dict

    def feature(self, name: str) -> dict:
        try:
            return self.features[name]
        except KeyError as exc:
            raise ConfigError(f"Unknown feature: {name}") from exc


@dataclass(frozen=True)
class Credentials:
    token: str
    api_key: str | None


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            merged[key] = _deep_merge(merged[key], value) if key in merged else value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path) or {}
    if overlay_path is None or not overlay_path.exists():
        return base
    return _deep_merge(base, read_yaml(overlay_path) or {})


def load_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> DashboardConfig:
    overlay_path = overlay_config_dir / CONFIG_FILENAME if overlay_config_dir is not None else None
    raw = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    cfg = validate_dashboard_config(raw, allow_unknown=allow_unknown)
    return DashboardConfig(
        api=cfg["api"],
        paging=cfg["paging"],
        details=cfg["details"],
        features=cfg["features"],
    )


def resolve_credentials(api_config: Mapping[str, Any], environ: Mapping[str, str] | None = None) -> Credentials:
    env = os.environ if environ is None else environ
    token = env.get(api_config["token_env"], "").strip()
    if not token:
        raise ConfigError(f"No authentication token found in ${api_config['token_env']}")
    api_key = env.get(api_config["apikey_env"], "").strip() or None
    return Credentials(token=token, api_key=api_key)
