"""
Odd/even week lookup against a published school term calendar.

Each term starts on an odd week and alternates from there. Holidays between
terms are not in the table, so dates falling in them resolve to UNRESOLVED
rather than to a guessed week type.
"""
from __future__ import annotations

import bisect
import json
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class AcademicWeek:
    week_start: date  # Monday
    week_type: str  # "odd" | "even"
    term_week: int

    @property
    def week_end(self) -> date:
        return self.week_start + timedelta(days=6)

    def contains(self, day: date) -> bool:
        return self.week_start <= day <= self.week_end


def monday_of(day: date) -> date:
    """Monday of the week containing day (Sunday belongs to the week before)."""
    return day - timedelta(days=day.weekday())


def next_monday_after(day: date) -> date:
    """First Monday strictly after day; a Monday jumps a full week."""
    return day + timedelta(days=(7 - day.weekday()) % 7 or 7)


def build_term_weeks(term_start: date, weeks: int = 10) -> List[AcademicWeek]:
    """Weeks of one term, alternating odd/even from week 1."""
    start = monday_of(term_start)
    return [
        AcademicWeek(
            week_start=start + timedelta(weeks=i),
            week_type="odd" if i % 2 == 0 else "even",
            term_week=i + 1,
        )
        for i in range(weeks)
    ]


# Singapore MOE school calendar 2025: four 10-week terms.
ACADEMIC_CALENDAR_2025: Tuple[AcademicWeek, ...] = tuple(
    week
    for term_start in (
        date(2025, 1, 6),
        date(2025, 3, 17),
        date(2025, 6, 23),
        date(2025, 9, 1),
    )
    for week in build_term_weeks(term_start)
)


class AcademicCalendar:
    """Read-only table of term weeks, searched by week start date."""

    def __init__(self, weeks: Iterable[AcademicWeek]) -> None:
        self._weeks: Tuple[AcademicWeek, ...] = tuple(sorted(weeks, key=lambda w: w.week_start))
        if not self._weeks:
            raise ValueError("Academic calendar needs at least one week")
        self._starts: Tuple[date, ...] = tuple(w.week_start for w in self._weeks)

    def __len__(self) -> int:
        return len(self._weeks)

    def __iter__(self) -> Iterator[AcademicWeek]:
        return iter(self._weeks)

    @property
    def first_week(self) -> AcademicWeek:
        return self._weeks[0]

    @property
    def last_week(self) -> AcademicWeek:
        return self._weeks[-1]

    def week_for(self, day: date) -> Optional[AcademicWeek]:
        idx = bisect.bisect_right(self._starts, day) - 1
        if idx < 0:
            return None
        week = self._weeks[idx]
        return week if week.contains(day) else None

    def resolve_week_type(self, day: date) -> str:
        """'odd', 'even', or UNRESOLVED for dates outside every term week."""
        week = self.week_for(day)
        return week.week_type if week else UNRESOLVED

    def next_monday(
        self, week_type: str | None, from_date: date
    ) -> Tuple[date, str]:
        """
        Find the first Monday after from_date whose week has week_type.

        The scan begins at next_monday_after(from_date) and stops at the last
        week in the table. With week_type None the first Monday is returned
        with whatever it resolves to. When nothing matches, the starting
        Monday is returned together with UNRESOLVED.
        """
        first = next_monday_after(from_date)
        if week_type is None:
            return first, self.resolve_week_type(first)

        monday = first
        while monday <= self.last_week.week_start:
            resolved = self.resolve_week_type(monday)
            if resolved == week_type:
                return monday, resolved
            monday += timedelta(weeks=1)
        return first, UNRESOLVED


DEFAULT_CALENDAR = AcademicCalendar(ACADEMIC_CALENDAR_2025)


def load_academic_calendar(path: str | Path) -> AcademicCalendar:
    """
    Load a term table from JSON:
    [{"weekStart": "2026-01-05", "weekType": "odd", "termWeek": 1}, ...]
    """
    try:
        rows = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Academic calendar file is not valid JSON: {e}") from e
    if not isinstance(rows, list):
        raise ValueError("Academic calendar file must contain a JSON list of weeks")

    weeks: List[AcademicWeek] = []
    for i, row in enumerate(rows):
        try:
            week_start = date.fromisoformat(row["weekStart"])
            week_type = row["weekType"]
            term_week = int(row.get("termWeek", 0))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValueError(f"Invalid academic week at index {i}: {row!r}") from e
        if week_type not in ("odd", "even"):
            raise ValueError(f"Invalid weekType at index {i}: {week_type!r}")
        if week_start.weekday() != 0:
            raise ValueError(f"weekStart at index {i} is not a Monday: {week_start}")
        weeks.append(AcademicWeek(week_start, week_type, term_week))
    return AcademicCalendar(weeks)
