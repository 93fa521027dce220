"""
Structural checks on a raw extraction batch.

The report is diagnostic only: callers keep processing whatever was
extracted, even when issues are found.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping

from .models import DAYS, WEEK_TYPES

# A complete timetable image usually yields 30-40 slot entries.
MIN_PLAUSIBLE_ENTRIES = 20

REQUIRED_FIELDS = ("day", "timeStart", "timeEnd", "subject", "location", "weekType")

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@dataclass
class ValidationReport:
    is_valid: bool
    issues: List[str] = field(default_factory=list)


def _is_valid_time(value: Any) -> bool:
    return isinstance(value, str) and bool(_TIME_RE.match(value))


def _field(entry: Any, name: str) -> Any:
    return entry.get(name) if isinstance(entry, Mapping) else None


def get_entries(data: Any) -> list | tuple | None:
    """Return the entries sequence of a raw batch, or None if there is none."""
    if not isinstance(data, Mapping):
        return None
    entries = data.get("entries")
    if not isinstance(entries, (list, tuple)):
        return None
    return entries


def validate_timetable_data(
    data: Any, min_entries: int = MIN_PLAUSIBLE_ENTRIES
) -> ValidationReport:
    """Check a raw batch ({"entries": [...]}) and list everything wrong with it."""
    entries = get_entries(data)
    if entries is None:
        return ValidationReport(False, ["No entries array found"])

    issues: List[str] = []

    if len(entries) < min_entries:
        issues.append(
            f"Too few entries extracted ({len(entries)}). "
            f"Expected at least {min_entries} entries."
        )

    missing = sum(
        1 for e in entries if any(not _field(e, f) for f in REQUIRED_FIELDS)
    )
    if missing:
        issues.append(f"{missing} entries missing required fields")

    bad_times = sum(
        1
        for e in entries
        if not (_is_valid_time(_field(e, "timeStart")) and _is_valid_time(_field(e, "timeEnd")))
    )
    if bad_times:
        issues.append(f"{bad_times} entries have invalid time format")

    bad_weeks = sum(1 for e in entries if _field(e, "weekType") not in WEEK_TYPES)
    if bad_weeks:
        issues.append(f"{bad_weeks} entries have invalid weekType")

    bad_days = sum(1 for e in entries if _field(e, "day") not in DAYS)
    if bad_days:
        issues.append(f"{bad_days} entries have invalid day")

    return ValidationReport(not issues, issues)
