from pathlib import Path

import pytest

from listviews.common.config_loader import load_config, resolve_credentials
from listviews.common.errors import ConfigError


def test_load_config_from_repo_config_dir():
    config = load_config(Path("config"))
    assert set(config.features) == {"licenses", "leads", "applicants"}
    assert config.details["batch_size"] == 10
    assert config.feature("leads")["page_size"] == 25


def test_unknown_feature_raises():
    config = load_config(Path("config"))
    with pytest.raises(ConfigError):
        config.feature("payments")


def test_load_config_applies_overlay_values(tmp_path: Path):
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "dashboard.yml").write_text(
        """api:
  base_url: "https://staging.example.test/functions/v1"
details:
  batch_size: 4
""",
        encoding="utf-8",
    )

    config = load_config(Path("config"), overlay_config_dir=overlay)

    assert config.api["base_url"] == "https://staging.example.test/functions/v1"
    assert config.api["token_env"] == "LISTVIEWS_TOKEN"
    assert config.details["batch_size"] == 4


def test_load_config_ignores_empty_overlay_file(tmp_path: Path):
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "dashboard.yml").write_text("", encoding="utf-8")

    assert load_config(Path("config"), overlay_config_dir=overlay).details["batch_size"] == 10


def test_load_config_rejects_non_mapping_overlay(tmp_path: Path):
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "dashboard.yml").write_text("- not\n- a\n- mapping\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(Path("config"), overlay_config_dir=overlay)


def test_load_config_missing_file(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_resolve_credentials():
    api = {"token_env": "TOKEN", "apikey_env": "APIKEY"}

    creds = resolve_credentials(api, {"TOKEN": " abc ", "APIKEY": ""})
    assert (creds.token, creds.api_key) == ("abc", None)

    with pytest.raises(ConfigError):
        resolve_credentials(api, {})
