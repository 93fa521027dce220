"""
Export normalised timetable entries to ICS, CSV, and JSON.

ICS export turns every entry into one weekly recurring event. Entries that
only happen on odd or even weeks repeat every two weeks, starting on a week
of the right type according to the academic calendar.
"""
from __future__ import annotations

import csv
import hashlib
import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import icalendar
import pytz

from .academic_calendar import (
    DEFAULT_CALENDAR,
    UNRESOLVED,
    AcademicCalendar,
    monday_of,
    next_monday_after,
)
from .models import DAYS, TimetableData, TimetableEntry

log = logging.getLogger(__name__)

# Singapore timezone for calendar
DEFAULT_TIMEZONE = "Asia/Singapore"

# Roughly one school year of weekly lessons; alternating-week lessons get half.
FULL_TERM_OCCURRENCES = 40

PRODID = "-//School Timetable Export//EN"
UID_DOMAIN = "school-timetable-export"

CSV_FIELDS = ["day", "timeStart", "timeEnd", "subject", "location", "weekType", "title"]

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

Entries = Union[TimetableData, Iterable[TimetableEntry]]


@dataclass
class CalendarBlock:
    """First occurrence and recurrence of one entry."""

    entry: TimetableEntry
    start: datetime
    end: datetime
    interval: int
    count: int
    anchor: date
    week_resolution: Optional[str] = None  # None for every-week entries
    warning: Optional[str] = None

    @property
    def rrule(self) -> dict:
        rule = {"freq": "weekly", "interval": self.interval, "count": self.count}
        if self.interval > 1:
            rule["wkst"] = "MO"
        return rule


def _parse_hhmm(text: str) -> time | None:
    m = _HHMM_RE.match(text.strip())
    if not m:
        return None
    try:
        return time(int(m.group(1)), int(m.group(2)))
    except ValueError:
        return None


def _unpack(data: Entries) -> Tuple[List[TimetableEntry], Optional[str], Optional[str]]:
    if isinstance(data, TimetableData):
        return list(data.entries), data.student_name, data.term
    return list(data), None, None


def resolve_anchor_monday(
    start_date: date | None = None,
    today: date | None = None,
) -> date:
    """Monday of start_date's week, or else the Monday following today."""
    if start_date is not None:
        return monday_of(start_date)
    return next_monday_after(today or date.today())


def expand_entry(
    entry: TimetableEntry,
    anchor_monday: date,
    calendar: AcademicCalendar = DEFAULT_CALENDAR,
    tz: pytz.tzinfo.BaseTzInfo | None = None,
    occurrences: int = FULL_TERM_OCCURRENCES,
) -> Tuple[Optional[CalendarBlock], List[str]]:
    """
    Work out the first occurrence and recurrence rule of one entry.

    Returns (block, warnings). block is None when the entry's times cannot
    be read; an unresolvable week type still yields a block, anchored at the
    week given by anchor_monday.
    """
    tz = tz or pytz.timezone(DEFAULT_TIMEZONE)
    warnings: List[str] = []

    start_t = _parse_hhmm(entry.time_start)
    end_t = _parse_hhmm(entry.time_end)
    if start_t is None or end_t is None:
        return None, [f"{entry.title} on {entry.day}: invalid time "
                      f"{entry.time_start!r}-{entry.time_end!r}, skipped"]
    if end_t <= start_t:
        return None, [f"{entry.title} on {entry.day}: ends at {entry.time_end} "
                      f"before it starts at {entry.time_start}, skipped"]

    if entry.day in DAYS:
        offset = DAYS.index(entry.day)
    else:
        offset = 0
        warnings.append(f"{entry.title}: unknown day {entry.day!r}, placed on Monday")

    anchor = anchor_monday
    resolution: Optional[str] = None
    warning: Optional[str] = None

    if entry.week_type in ("odd", "even"):
        interval, count = 2, occurrences // 2
        resolution = calendar.resolve_week_type(anchor)
        if resolution == UNRESOLVED:
            warning = (
                f"{entry.title} on {entry.day}: week of {anchor} is not in the "
                f"academic calendar, {entry.week_type}-week phase not verified"
            )
        elif resolution != entry.week_type:
            monday, found = calendar.next_monday(entry.week_type, anchor)
            if found == UNRESOLVED:
                resolution = UNRESOLVED
                warning = (
                    f"{entry.title} on {entry.day}: no {entry.week_type} week after "
                    f"{anchor} in the academic calendar, {entry.week_type}-week "
                    f"phase not verified"
                )
            else:
                anchor, resolution = monday, found
    else:
        interval, count = 1, occurrences
        if entry.week_type != "both":
            warnings.append(
                f"{entry.title}: unknown week type {entry.week_type!r}, repeating every week"
            )

    if warning:
        warnings.append(warning)

    event_date = anchor + timedelta(days=offset)
    block = CalendarBlock(
        entry=entry,
        start=tz.localize(datetime.combine(event_date, start_t)),
        end=tz.localize(datetime.combine(event_date, end_t)),
        interval=interval,
        count=count,
        anchor=anchor,
        week_resolution=resolution,
        warning=warning,
    )
    return block, warnings


def _uid(block: CalendarBlock, position: int) -> str:
    """md5 of the batch position and the block slot; identical blocks get distinct UIDs."""
    e = block.entry
    uid_string = (
        f"{position}-{e.title}-{e.day}-{e.time_start}-{e.time_end}-{e.week_type}-"
        f"{block.start.date().isoformat()}"
    )
    return f"{hashlib.md5(uid_string.encode('utf-8')).hexdigest()}@{UID_DOMAIN}"


def build_calendar(
    data: Entries,
    start_date: date | None = None,
    today: date | None = None,
    calendar: AcademicCalendar = DEFAULT_CALENDAR,
    tz_name: str = DEFAULT_TIMEZONE,
    dtstamp: datetime | None = None,
    occurrences: int = FULL_TERM_OCCURRENCES,
) -> Tuple[icalendar.Calendar, List[CalendarBlock], List[str]]:
    """Build the VCALENDAR; returns (calendar, blocks, warnings)."""
    entries, student_name, term = _unpack(data)
    tz = pytz.timezone(tz_name)
    anchor_monday = resolve_anchor_monday(start_date, today)
    stamp = dtstamp or datetime.now(timezone.utc)

    cal = icalendar.Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", f"{student_name or 'Student'} Timetable")
    cal.add("x-wr-caldesc", f"{term or 'Academic'} Timetable")
    cal.add("x-wr-timezone", tz_name)

    blocks: List[CalendarBlock] = []
    warnings: List[str] = []

    for position, entry in enumerate(entries):
        block, entry_warnings = expand_entry(entry, anchor_monday, calendar, tz, occurrences)
        for w in entry_warnings:
            log.warning(w)
        warnings.extend(entry_warnings)
        if block is None:
            continue
        blocks.append(block)

        event = icalendar.Event()
        event.add("uid", _uid(block, position))
        event.add("summary", entry.title)
        event.add("description", f"Subject: {entry.subject}\nLocation: {entry.location}")
        event.add("location", entry.location)
        event.add("dtstart", block.start)
        event.add("dtend", block.end)
        event.add("dtstamp", stamp)
        event.add("rrule", block.rrule)
        cal.add_component(event)

    cal.add_missing_timezones()
    return cal, blocks, warnings


def export_ics(data: Entries, out_path: str | Path, **options) -> List[str]:
    """Export timetable to iCalendar (.ics); returns the per-entry warnings."""
    cal, _, warnings = build_calendar(data, **options)
    Path(out_path).write_bytes(cal.to_ical())
    return warnings


def export_csv(data: Entries, out_path: str | Path) -> None:
    """Export timetable to CSV."""
    entries, _, _ = _unpack(data)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        w.writeheader()
        w.writerows(e.to_dict() for e in entries)


def export_json(data: Entries, out_path: str | Path) -> None:
    """Export timetable to JSON."""
    if not isinstance(data, TimetableData):
        data = TimetableData(entries=list(data))
    Path(out_path).write_text(
        json.dumps(data.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
    )


def export(data: Entries, out_path: str | Path, fmt: str, **ics_options) -> List[str]:
    """Export to the given format: ics, csv, or json. Returns warnings."""
    fmt = fmt.lower()
    if fmt == "ics":
        return export_ics(data, out_path, **ics_options)
    elif fmt == "csv":
        export_csv(data, out_path)
    elif fmt == "json":
        export_json(data, out_path)
    else:
        raise ValueError(f"Unsupported format: {fmt}. Use ics, csv, or json.")
    return []
