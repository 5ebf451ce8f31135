"""CLI entrypoint for the dashboard list views."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

from listviews.common.config_loader import load_config, resolve_credentials
from listviews.common.constants import ALL, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, FEATURES
from listviews.common.errors import ConfigError, PipelineError
from listviews.common.http import HttpClient
from listviews.common.logging import build_logger, log_event
from listviews.common.time_utils import utc_today_iso
from listviews.features.registry import get_feature, http_source
from listviews.fetch.runner import load_view
from listviews.fetch.sources import FixtureSource
from listviews.pipeline.export import export_filename, write_export
from listviews.pipeline.filters import normalize_filters, validate_filters
from listviews.pipeline.view import ListView


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("feature", choices=FEATURES)
    parser.add_argument("--search", default="")
    parser.add_argument("--category", default=ALL)
    parser.add_argument("--select", action="append", default=[], metavar="FIELD=A,B")
    parser.add_argument("--range", action="append", default=[], metavar="FIELD=LO:HI")
    parser.add_argument("--server", action="append", default=[], metavar="KEY=VALUE")
    parser.add_argument("--sort", default=None)
    parser.add_argument("--direction", default="desc", choices=["asc", "desc"])
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--page-size", type=int, default=None)
    parser.add_argument("--export", default=None)
    parser.add_argument("--summary", default=None, metavar="FIELD")
    parser.add_argument("--fixtures-dir", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    return parser.parse_args(argv)


def _pairs(values: list[str], option: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for value in values:
        key, sep, rest = value.partition("=")
        if not sep or not key.strip():
            raise ConfigError(f"{option} expects KEY=VALUE, got {value!r}")
        out[key.strip()] = rest.strip()
    return out


def build_view(args: argparse.Namespace, page_size: int) -> ListView:
    view = ListView(get_feature(args.feature), page_size=page_size)
    state = normalize_filters(
        {
            "category": args.category,
            "query": args.search,
            "ranges": _pairs(args.range, "--range"),
            "selections": _pairs(args.select, "--select"),
            "server": _pairs(args.server, "--server"),
        },
        strict=True,
    )
    validate_filters(view.feature.filter_spec, state)
    view.set_filters(state)
    if args.sort:
        view.set_sort(args.sort, args.direction)
    return view


def _export_path(target: str, prefix: str) -> Path:
    path = Path(target)
    if path.is_dir() or not path.suffix:
        return path / export_filename(prefix, utc_today_iso())
    return path


def run_command(args: argparse.Namespace) -> int:
    config = load_config(
        Path(args.config_dir),
        overlay_config_dir=Path(args.overlay_config_dir) if args.overlay_config_dir else None,
    )
    logger = build_logger(args.feature, log_path=Path(args.log_file) if args.log_file else None, level=args.log_level)
    feature_cfg = config.feature(args.feature)
    view = build_view(args, args.page_size if args.page_size is not None else int(feature_cfg["page_size"]))
    batch_size = int(config.details["batch_size"])

    if args.fixtures_dir:
        source = FixtureSource(Path(args.fixtures_dir), args.feature)
        result = load_view(view, source, logger=logger, detail_batch_size=batch_size)
    else:
        credentials = resolve_credentials(config.api)
        with HttpClient.from_config(config.api, token=credentials.token, api_key=credentials.api_key) as client:
            source = http_source(args.feature, client, config, logger=logger)
            result = load_view(view, source, logger=logger, detail_batch_size=batch_size)

    view.set_page(args.page)
    output = view.snapshot()
    if args.summary:
        output["summary"] = [asdict(item) for item in view.distribution(args.summary)]

    if args.export and not result.primary_failed:
        feature = view.feature
        written = write_export(
            _export_path(args.export, feature.export_prefix or feature.name),
            view.export_rows(),
            sheet_name=feature.export_sheet,
        )
        output["export"] = str(written)
        log_event(
            logger,
            f"export written to {written}",
            epoch_id=result.epoch_id,
            feature=feature.name,
            event="EXPORT_WRITTEN",
            status="ok",
            rows_out=len(view.filtered),
        )

    print(json.dumps(output, ensure_ascii=False, indent=2, default=str))
    if result.primary_failed:
        return EXIT_HARD_FAIL
    if result.partial:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        print(f"{exc.error_code}: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL
    except ValueError as exc:
        print(f"INVALID_ARGUMENT: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
