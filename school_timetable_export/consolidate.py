"""
Fold odd-week / even-week copies of the same slot into one "both" entry.

Timetable images list odd and even weeks as separate grids, so a class that
happens every week is extracted twice. Grouping is by everything except the
week type; anything that is not a clean odd+even pair is passed through as is.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

from .models import TimetableEntry

log = logging.getLogger(__name__)


class GroupOutcome(enum.Enum):
    SINGLE = "single"
    MERGED_BOTH = "merged_both"
    ANOMALY_PASSTHROUGH = "anomaly_passthrough"


@dataclass
class GroupResult:
    outcome: GroupOutcome
    entries: List[TimetableEntry]
    message: Optional[str] = None


def _match_key(entry: TimetableEntry) -> Tuple[str, str, str, str, str]:
    return (entry.day, entry.time_start, entry.time_end, entry.subject, entry.location)


def _describe(key: Tuple[str, ...]) -> str:
    day, start, end, subject, location = key
    return f"{day} {start}-{end} {subject}/{location}"


def group_by_slot(
    entries: Iterable[TimetableEntry],
) -> Dict[Tuple[str, str, str, str, str], List[TimetableEntry]]:
    """Group entries by slot identity, keeping first-seen order."""
    groups: Dict[Tuple[str, str, str, str, str], List[TimetableEntry]] = {}
    for entry in entries:
        groups.setdefault(_match_key(entry), []).append(entry)
    return groups


def classify_group(group: List[TimetableEntry]) -> GroupResult:
    """Decide what one slot group turns into."""
    if len(group) == 1:
        return GroupResult(GroupOutcome.SINGLE, list(group))

    key = _match_key(group[0])
    week_types = [e.week_type for e in group]
    if len(group) == 2 and set(week_types) == {"odd", "even"}:
        return GroupResult(GroupOutcome.MERGED_BOTH, [replace(group[0], week_type="both")])

    if len(group) == 2:
        message = (
            f"Duplicate entries for {_describe(key)} "
            f"(week types {', '.join(week_types)}) kept separate"
        )
    else:
        message = f"Found {len(group)} matching entries for {_describe(key)}"
    return GroupResult(GroupOutcome.ANOMALY_PASSTHROUGH, list(group), message)


def consolidate_week_types(
    entries: Iterable[TimetableEntry],
    diagnostics: Optional[List[str]] = None,
) -> List[TimetableEntry]:
    """
    Merge odd/even duplicates into weekType "both".

    :param entries: slot entries, not yet merged into blocks.
    :param diagnostics: optional list that anomaly messages are appended to.
    :returns: consolidated entries, groups in first-seen order.
    """
    entries = list(entries)
    consolidated: List[TimetableEntry] = []

    for group in group_by_slot(entries).values():
        result = classify_group(group)
        if result.message:
            log.warning(result.message)
            if diagnostics is not None:
                diagnostics.append(result.message)
        consolidated.extend(result.entries)

    log.info("Consolidated %d entries into %d entries", len(entries), len(consolidated))
    return consolidated
