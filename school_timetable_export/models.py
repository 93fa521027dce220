"""
Timetable entry records shared by the normalisation pipeline and exporters.

Raw extraction output uses camelCase keys (timeStart, weekType, ...); the
records here keep those names on the wire (to_dict / from_raw) and use
snake_case attributes in Python.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
WEEK_TYPES = ("odd", "even", "both")

# camelCase wire key -> attribute name
_FIELD_KEYS = {
    "day": "day",
    "timeStart": "time_start",
    "timeEnd": "time_end",
    "subject": "subject",
    "location": "location",
    "weekType": "week_type",
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass(frozen=True)
class TimetableEntry:
    """One schedule slot or merged block.

    Fields are kept as plain strings so that malformed OCR values
    (e.g. "8:0" or "Mon") travel through the pipeline untouched.
    """

    day: str
    time_start: str
    time_end: str
    subject: str
    location: str = ""
    week_type: str = "both"

    @property
    def title(self) -> str:
        return f"{self.subject}/{self.location}"

    @property
    def day_index(self) -> int:
        """0 for Monday .. 4 for Friday; unknown days sort after Friday."""
        try:
            return DAYS.index(self.day)
        except ValueError:
            return len(DAYS)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "TimetableEntry":
        """Build an entry from an extraction dict without validating it."""
        values = {attr: _text(raw.get(key)) for key, attr in _FIELD_KEYS.items()}
        values["subject"] = values["subject"].strip()
        values["location"] = values["location"].strip()
        return cls(**values)

    def edit(self, **changes: str) -> "TimetableEntry":
        """Return a copy with some fields changed (title follows automatically)."""
        for name in ("subject", "location"):
            if name in changes:
                changes[name] = _text(changes[name]).strip()
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, str]:
        d = {key: getattr(self, attr) for key, attr in _FIELD_KEYS.items()}
        d["title"] = self.title
        return d


@dataclass
class TimetableData:
    """A normalised batch plus the opaque metadata that came with it."""

    entries: List[TimetableEntry] = field(default_factory=list)
    student_name: Optional[str] = None
    term: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.student_name:
            d["studentName"] = self.student_name
        if self.term:
            d["term"] = self.term
        d["entries"] = [e.to_dict() for e in self.entries]
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TimetableData":
        entries = [
            TimetableEntry.from_raw(e)
            for e in data.get("entries") or []
            if isinstance(e, Mapping)
        ]
        return cls(
            entries=entries,
            student_name=data.get("studentName"),
            term=data.get("term"),
        )
