from __future__ import annotations

import json
from pathlib import Path

import pytest

from listviews.cli import parse_args, run_command
from listviews.common.constants import FEATURES


def _export(tmp_path: Path, feature: str, name: str, capsys) -> tuple[bytes, dict]:
    out = tmp_path / name
    exit_code = run_command(parse_args([feature, "--fixtures-dir", "tests/fixtures", "--config-dir", "config", "--export", str(out)]))
    assert exit_code == 0
    snapshot = json.loads(capsys.readouterr().out)
    snapshot.pop("epoch_id")
    snapshot.pop("export")
    return out.read_bytes(), snapshot


@pytest.mark.regression
@pytest.mark.parametrize("feature", FEATURES)
def test_fixture_exports_are_byte_stable(tmp_path: Path, capsys, feature):
    first_bytes, first_snapshot = _export(tmp_path, feature, "first.csv", capsys)
    second_bytes, second_snapshot = _export(tmp_path, feature, "second.csv", capsys)

    assert first_bytes == second_bytes
    assert first_snapshot == second_snapshot
    assert first_bytes.count(b"\r\n") == first_snapshot["total_records"] + 1
