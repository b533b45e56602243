"""Command line interface for astrotiming.

Chart files are JSON documents of the form::

    {"reference": "1990-05-01T12:00:00+00:00",
     "bodies": {"SUN": {"longitude": 40.5, "speed": 0.97}, "MOON": 122.0}}

``reference`` is only required by the ``timing`` command.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from .boot.logging import configure_logging
from .canonical import NatalChart, positions_from_mapping, to_payload
from .config.settings import Settings, load_settings
from .errors import AstroTimingError, ValidationError
from .observability.metrics import record_error
from .timing.engine import TimingRequest
from .timing.scoring import PEAK_DURATION_LABELS

LOG = logging.getLogger(__name__)

__all__ = ["build_parser", "main"]


def _read_chart_file(path: str) -> Mapping[str, Any]:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValidationError("chart file not found", context={"path": path}) from exc
    except json.JSONDecodeError as exc:
        raise ValidationError("chart file is not valid JSON", context={"path": path}) from exc
    if not isinstance(raw, Mapping) or not isinstance(raw.get("bodies"), Mapping):
        raise ValidationError("chart file must contain a 'bodies' mapping", context={"path": path})
    return raw


def _parse_moment(value: str, field: str) -> datetime:
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError(f"{field} is not a valid ISO-8601 date", context={"field": field}) from exc


def _emit(payload: Any, output: str | None) -> None:
    text = json.dumps(to_payload(payload), indent=2, ensure_ascii=False)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {output}")
    else:
        print(text)


def cmd_aspects(args: argparse.Namespace, settings: Settings) -> int:
    raw = _read_chart_file(args.chart)
    detector = settings.build_detector()
    aspects = detector.find_all_aspects(positions_from_mapping(raw["bodies"]))
    _emit({"aspects": aspects}, args.output)
    return 0


def cmd_patterns(args: argparse.Namespace, settings: Settings) -> int:
    raw = _read_chart_file(args.chart)
    detector = settings.build_configuration_detector()
    configurations = detector.detect(positions_from_mapping(raw["bodies"]))
    _emit({"configurations": configurations}, args.output)
    return 0


def cmd_position(args: argparse.Namespace, settings: Settings) -> int:
    ephemeris = settings.build_ephemeris()
    moment = _parse_moment(args.at, "at")
    positions = [ephemeris.position(body, moment) for body in args.bodies]
    _emit({"moment": moment, "positions": positions}, args.output)
    return 0


def cmd_timing(args: argparse.Namespace, settings: Settings) -> int:
    raw = _read_chart_file(args.chart)
    chart = NatalChart.from_mapping(raw.get("reference"), raw["bodies"])
    engine = settings.build_engine()
    request = TimingRequest(
        chart=chart,
        start=_parse_moment(args.start, "start"),
        end=_parse_moment(args.end, "end"),
        event_category=args.category,
        step_days=args.step_days if args.step_days is not None else settings.timing.step_days,
    )
    report = engine.run(request)
    for warning in report.warnings:
        LOG.warning(warning)
    payload = to_payload(report)
    payload["peak_durations"] = [PEAK_DURATION_LABELS.get(w.kind, "1 month") for w in report.peak_periods]
    if not args.include_windows:
        payload.pop("windows", None)
    _emit(payload, args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="astrotiming",
        description="Aspect detection, configuration search and transit timing.",
    )
    parser.add_argument("--config", help="Path to a settings YAML file")
    parser.add_argument("--log-level", help="Override the log level (e.g. DEBUG)")
    parser.add_argument("--output", "-o", help="Write JSON output to this path")
    sub = parser.add_subparsers(dest="command", required=True)

    aspects = sub.add_parser("aspects", help="Detect pairwise aspects in a chart file")
    aspects.add_argument("chart", help="Chart JSON file")
    aspects.set_defaults(func=cmd_aspects)

    patterns = sub.add_parser("patterns", help="Detect Grand Trines, T-Squares and Stelliums")
    patterns.add_argument("chart", help="Chart JSON file")
    patterns.set_defaults(func=cmd_patterns)

    position = sub.add_parser("position", help="Compute ephemeris positions")
    position.add_argument("bodies", nargs="+", help="Body names such as SUN MARS")
    position.add_argument("--at", required=True, help="ISO-8601 instant (UTC if naive)")
    position.set_defaults(func=cmd_position)

    timing = sub.add_parser("timing", help="Produce a timing report for a date range")
    timing.add_argument("chart", help="Chart JSON file with a reference date")
    timing.add_argument("--start", required=True, help="ISO-8601 start date")
    timing.add_argument("--end", required=True, help="ISO-8601 end date")
    timing.add_argument("--category", default="personal", help="Event category")
    timing.add_argument("--step-days", type=float, default=None, help="Days between samples")
    timing.add_argument(
        "--include-windows",
        action="store_true",
        help="Include every window in the output, not only peaks and summary",
    )
    timing.set_defaults(func=cmd_timing)

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        settings = load_settings(Path(args.config) if args.config else None)
        configure_logging(level=args.log_level or settings.logging.level, stream=sys.stderr)
        return args.func(args, settings)
    except AstroTimingError as exc:
        record_error(f"cli.{args.command}", exc)
        print(json.dumps(exc.as_dict()), file=sys.stderr)
        return 2
