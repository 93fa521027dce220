import pytest

from school_timetable_export.models import TimetableEntry


@pytest.fixture
def make_entry():
    def _make(day="Monday", start="08:00", end="08:20", subject="MATH",
              location="S2-06", week="both"):
        return TimetableEntry(day, start, end, subject, location, week)
    return _make


@pytest.fixture
def raw_monday_batch():
    """Monday 08:00-09:00 MATH in three 20-minute slots, on odd and even weeks."""
    slots = [("08:00", "08:20"), ("08:20", "08:40"), ("08:40", "09:00")]
    return {
        "studentName": "Liu",
        "term": "2025 Term 1",
        "entries": [
            {
                "day": "Monday",
                "timeStart": s,
                "timeEnd": e,
                "subject": "MATH",
                "location": "S2-06",
                "weekType": week,
                "title": "MATH/S2-06",
            }
            for week in ("odd", "even")
            for s, e in slots
        ],
    }
