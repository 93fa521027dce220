"""
Command-line interface: normalise a saved timetable extraction and export it.
"""
from __future__ import annotations

import argparse
import logging
import re
import sys
from datetime import date, datetime, time, timezone
from pathlib import Path

import pytz

from . import __version__
from .academic_calendar import DEFAULT_CALENDAR, load_academic_calendar
from .export import DEFAULT_TIMEZONE, export
from .extraction import (
    ExtractionError,
    apply_corrections,
    grid_points_to_entries,
    parse_extraction_response,
)
from .merge import MAX_SESSION_MINUTES, MERGE_POLICIES
from .pipeline import process_timetable
from .validate import MIN_PLAUSIBLE_ENTRIES, validate_timetable_data


def _parse_date(value: str | None, flag: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{flag} must be YYYY-MM-DD, got {value!r}") from None


def _parse_dtstamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        stamp = datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(f"--dtstamp must be an ISO datetime, got {value!r}") from None
    if stamp.tzinfo is None:
        return stamp.replace(tzinfo=timezone.utc)
    return stamp.astimezone(timezone.utc)


def _default_dtstamp(start_date: date | None, today: date | None) -> datetime | None:
    """Midnight UTC of --today, else of --start-date."""
    pinned = today or start_date
    if pinned is None:
        return None
    return datetime.combine(pinned, time(0, 0), tzinfo=timezone.utc)


def _parse_lunch_boundaries(value: str | None) -> frozenset[str] | None:
    if value is None:
        return None
    times = [t.strip() for t in value.split(",") if t.strip()]
    for t in times:
        if not re.fullmatch(r"\d{2}:\d{2}", t):
            raise ValueError(f"--lunch-boundaries expects HH:MM,HH:MM,..., got {t!r}")
    return frozenset(times)


def _read_json(path: str, what: str):
    p = Path(path)
    if not p.exists():
        raise ValueError(f"{what} not found: {p}")
    return parse_extraction_response(p.read_text(encoding="utf-8"))


def _load_raw_batch(args) -> dict:
    payload = _read_json(args.input, "Input file")
    if args.grid:
        if not isinstance(payload, list):
            raise ValueError("--grid expects a JSON list of grid data points")
        raw = {"entries": grid_points_to_entries(payload)}
    else:
        raw = payload
    if args.corrections and isinstance(raw, dict) and isinstance(raw.get("entries"), list):
        corrections = _read_json(args.corrections, "--corrections file")
        if isinstance(corrections, dict):
            corrections = corrections.get("corrections") or []
        raw = dict(raw, entries=apply_corrections(raw["entries"], corrections))
    return raw


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Normalise an OCR/AI extraction of a school timetable and export it to ICS / CSV / JSON.\n"
            "Odd/even week lessons repeat every two weeks, phased by the academic calendar."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "input",
        metavar="INPUT",
        help="Saved extraction response (JSON, markdown fences allowed).",
    )
    parser.add_argument(
        "-o",
        "--output",
        default="timetable",
        help="Output path (without extension). Default: timetable",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["ics", "csv", "json"],
        default="ics",
        help="Export format. Default: ics",
    )
    parser.add_argument(
        "--merge",
        choices=sorted(MERGE_POLICIES),
        default="smart",
        help="Slot merge policy. 'smart' never merges across lunch, past 2 hours, "
        "or between PT and ordinary lessons. Default: smart",
    )
    parser.add_argument(
        "--max-session-minutes",
        type=int,
        metavar="N",
        help=f"(smart) Longest block a merge may produce. Default: {MAX_SESSION_MINUTES}",
    )
    parser.add_argument(
        "--lunch-boundaries",
        metavar="HH:MM,...",
        help="(smart) Comma-separated slot boundaries a block never crosses. Default: 12:00,12:20,12:40,13:00",
    )
    parser.add_argument(
        "--min-entries",
        type=int,
        default=MIN_PLAUSIBLE_ENTRIES,
        metavar="N",
        help=f"Warn when fewer raw entries than this were extracted. Default: {MIN_PLAUSIBLE_ENTRIES}",
    )
    parser.add_argument(
        "--grid",
        action="store_true",
        help="INPUT is a list of per-cell grid data points instead of an entries batch.",
    )
    parser.add_argument(
        "--corrections",
        metavar="PATH",
        help="JSON file with second-pass corrections ({\"corrections\": [...]}) applied before processing.",
    )
    parser.add_argument(
        "--start-date",
        metavar="YYYY-MM-DD",
        help="(ICS) Anchor events on the week containing this date. Default: next Monday.",
    )
    parser.add_argument(
        "--today",
        metavar="YYYY-MM-DD",
        help="(ICS) Date to count 'next Monday' from. Default: today.",
    )
    parser.add_argument(
        "--timezone",
        default=DEFAULT_TIMEZONE,
        help=f"(ICS) Timezone of the timetable. Default: {DEFAULT_TIMEZONE}",
    )
    parser.add_argument(
        "--dtstamp",
        metavar="ISO-DATETIME",
        help="(ICS) DTSTAMP written on every event (UTC when no offset is given). "
        "Default: midnight UTC of --today or --start-date, else the current time.",
    )
    parser.add_argument(
        "--calendar-file",
        metavar="PATH",
        help="(ICS) JSON academic calendar to use instead of the built-in 2025 table.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--validate-only",
        action="store_true",
        help="Only print the validation report, then exit (1 if issues were found).",
    )
    mode.add_argument(
        "--list-entries",
        action="store_true",
        help="Print the normalised entries, then exit.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.ERROR,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        raw = _load_raw_batch(args)
        start_date = _parse_date(args.start_date, "--start-date")
        today = _parse_date(args.today, "--today")
        dtstamp = _parse_dtstamp(args.dtstamp) or _default_dtstamp(start_date, today)
        lunch_boundaries = _parse_lunch_boundaries(args.lunch_boundaries)
        if args.max_session_minutes is not None and args.max_session_minutes <= 0:
            raise ValueError("--max-session-minutes must be positive")
        if args.merge == "naive" and (lunch_boundaries is not None or args.max_session_minutes is not None):
            raise ValueError("--lunch-boundaries and --max-session-minutes only apply to --merge smart")
        tz_name = pytz.timezone(args.timezone).zone
        calendar = (
            load_academic_calendar(args.calendar_file) if args.calendar_file else DEFAULT_CALENDAR
        )
    except ExtractionError as e:
        print(f"Error reading extraction: {e}", file=sys.stderr)
        return 1
    except pytz.UnknownTimeZoneError:
        print(f"Error: unknown timezone {args.timezone!r}", file=sys.stderr)
        return 1
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.validate_only:
        report = validate_timetable_data(raw, min_entries=args.min_entries)
        if report.is_valid:
            print("Extraction looks complete.")
            return 0
        for issue in report.issues:
            print(f"- {issue}")
        return 1

    result = process_timetable(
        raw,
        merge_policy=args.merge,
        min_entries=args.min_entries,
        lunch_boundaries=lunch_boundaries,
        max_minutes=args.max_session_minutes,
    )
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    for issue in result.validation.issues:
        print(f"Warning: {issue}", file=sys.stderr)
    for message in result.diagnostics:
        print(f"Warning: {message}", file=sys.stderr)

    data = result.data
    if args.list_entries:
        print("Day        | Time        | Week | Title")
        print("-" * 60)
        for e in data.entries:
            print(f"{e.day:<10} | {e.time_start}-{e.time_end} | {e.week_type:<4} | {e.title}")
        return 0

    ext = {"ics": ".ics", "csv": ".csv", "json": ".json"}[args.format]
    out_path = Path(args.output).with_suffix(ext) if Path(args.output).suffix else Path(args.output + ext)
    warnings = export(
        data,
        out_path,
        args.format,
        **(
            {
                "start_date": start_date,
                "today": today,
                "calendar": calendar,
                "tz_name": tz_name,
                "dtstamp": dtstamp,
            }
            if args.format == "ics"
            else {}
        ),
    )
    for w in warnings:
        print(f"Warning: {w}", file=sys.stderr)
    print(f"Exported {len(data.entries)} entr{'y' if len(data.entries) == 1 else 'ies'} to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
