"""
Turn the text returned by the timetable OCR/AI service into raw entry dicts.

The service is asked for JSON but tends to wrap it in markdown fences. It
answers either with a full batch ({"studentName", "term", "entries": [...]})
or, in grid mode, with one data point per occupied grid cell:

    {"day": "Monday", "weekSection": "odd", "timeColumn": 8,
     "timeSlot": "08:00-08:20", "content": "MTG/PD", "confidence": 0.95}

Grid columns are numbered 8..31, one 20-minute slot each from 08:00.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Sequence

log = logging.getLogger(__name__)

FIRST_COLUMN = 8
SLOT_MINUTES = 20
DAY_START_MINUTES = 8 * 60

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class ExtractionError(ValueError):
    """The extraction service returned something that is not usable JSON."""


def clean_json_response(text: str) -> str:
    """Strip ```json ... ``` fences around a JSON payload."""
    clean = text.strip()
    if clean.startswith("```"):
        clean = _FENCE_RE.sub("", clean)
    return clean


def parse_extraction_response(text: str) -> Any:
    clean = clean_json_response(text)
    try:
        return json.loads(clean)
    except json.JSONDecodeError as e:
        log.error("Failed to parse extraction response: %.200s", text)
        raise ExtractionError(f"Failed to parse extraction response: {e}") from e


def column_to_slot(column: int) -> tuple[str, str]:
    """8 -> ('08:00', '08:20'), 9 -> ('08:20', '08:40'), ..."""
    start = DAY_START_MINUTES + (column - FIRST_COLUMN) * SLOT_MINUTES
    end = start + SLOT_MINUTES
    return f"{start // 60:02d}:{start % 60:02d}", f"{end // 60:02d}:{end % 60:02d}"


def split_cell_content(content: str) -> tuple[str, str]:
    """
    Split a grid cell into (subject, location).

    'MATH\\nS2-06' -> ('MATH', 'S2-06'); 'MTG/PD' -> ('MTG', 'PD');
    'ASSEMBLY' -> ('ASSEMBLY', '').
    """
    lines = [l.strip() for l in content.split("\n")]
    lines = [l for l in lines if l]
    if len(lines) >= 2:
        return lines[0], lines[1]
    text = lines[0] if lines else ""
    if "/" in text:
        subject, location = text.split("/", 1)
        return subject.strip(), location.strip()
    return text, ""


def _slot_times(point: Mapping[str, Any]) -> tuple[str, str] | None:
    slot = point.get("timeSlot")
    if isinstance(slot, str) and "-" in slot:
        start, end = slot.split("-", 1)
        return start.strip(), end.strip()
    column = point.get("timeColumn")
    if isinstance(column, int) and not isinstance(column, bool):
        return column_to_slot(column)
    return None


def grid_points_to_entries(points: Sequence[Any]) -> List[Dict[str, str]]:
    """Convert grid data points into raw entry dicts; empty cells are dropped."""
    entries: List[Dict[str, str]] = []
    for point in points:
        if not isinstance(point, Mapping):
            continue
        content = point.get("content")
        if not isinstance(content, str) or not content.strip():
            continue
        times = _slot_times(point)
        if times is None:
            log.warning("Grid point without a usable time slot: %r", point)
            continue

        subject, location = split_cell_content(content)
        entries.append({
            "day": point.get("day") or "",
            "timeStart": times[0],
            "timeEnd": times[1],
            "subject": subject,
            "location": location,
            "weekType": point.get("weekSection") or "",
            "title": f"{subject}/{location}",
        })
    return entries


def _entries_match(a: Mapping[str, Any], b: Mapping[str, Any]) -> bool:
    return all(a.get(k) == b.get(k) for k in ("day", "timeStart", "subject", "weekType"))


def apply_corrections(
    entries: Sequence[Dict[str, Any]], corrections: Sequence[Any]
) -> List[Dict[str, Any]]:
    """
    Apply second-pass corrections of the form
    {"originalEntry": {...}, "correctedEntry": {...}, "reason": "..."}.
    Each correction replaces the first entry matching on day, timeStart,
    subject and weekType; unmatched corrections are ignored.
    """
    corrected = list(entries)
    for correction in corrections:
        if not isinstance(correction, Mapping):
            continue
        original = correction.get("originalEntry")
        replacement = correction.get("correctedEntry")
        if not isinstance(original, Mapping) or not isinstance(replacement, Mapping):
            continue
        for i, entry in enumerate(corrected):
            if _entries_match(entry, original):
                corrected[i] = dict(replacement)
                log.info("Applied correction: %s", correction.get("reason", ""))
                break
    return corrected
