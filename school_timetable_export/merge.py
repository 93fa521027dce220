"""
Coalesce consecutive 20-minute slots into class blocks.

Both policies share one sort-and-scan loop; they differ only in the
predicate that decides whether the next slot extends the current block.
"""
from __future__ import annotations

import functools
import logging
import re
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional

from .models import TimetableEntry

log = logging.getLogger(__name__)

MergePredicate = Callable[[TimetableEntry, TimetableEntry], bool]

# Slot boundaries inside the 12:00-13:00 lunch hour.
LUNCH_BOUNDARIES = frozenset({"12:00", "12:20", "12:40", "13:00"})
MAX_SESSION_MINUTES = 120

_PARENS_RE = re.compile(r"\s*\([^)]*\)")
_PT_PREFIX = "PT "


def sort_entries(entries: Iterable[TimetableEntry]) -> List[TimetableEntry]:
    """Order by day, week type and start; ties keep duplicates of a slot adjacent."""
    return sorted(
        entries,
        key=lambda e: (e.day_index, e.week_type, e.time_start, e.subject, e.location, e.time_end),
    )


def _same_class(a: TimetableEntry, b: TimetableEntry) -> bool:
    return (
        a.day == b.day
        and a.week_type == b.week_type
        and a.subject == b.subject
        and a.location == b.location
    )


def _overlaps(current: TimetableEntry, nxt: TimetableEntry) -> bool:
    """nxt repeats or overlaps the time already covered by current."""
    if not _same_class(current, nxt):
        return False
    if (nxt.time_start, nxt.time_end) == (current.time_start, current.time_end):
        return True
    return current.time_start <= nxt.time_start < current.time_end


def merge_time_blocks(
    entries: Iterable[TimetableEntry], can_merge: MergePredicate
) -> List[TimetableEntry]:
    """
    Single left-to-right pass over the sorted entries.

    Slots overlapping the current block (duplicated extraction rows) are
    absorbed into it whatever the predicate says, so blocks never overlap.
    """
    merged: List[TimetableEntry] = []
    current: Optional[TimetableEntry] = None

    for entry in sort_entries(entries):
        if current is None:
            current = entry
        elif _overlaps(current, entry):
            log.debug("Absorbed overlapping slot %s-%s of %s", entry.time_start, entry.time_end, entry.title)
            current = replace(current, time_end=max(current.time_end, entry.time_end))
        elif can_merge(current, entry):
            current = replace(current, time_end=entry.time_end)
        else:
            merged.append(current)
            current = entry

    if current is not None:
        merged.append(current)
    return merged


# ──────────────────────────────────────────────────────────────────
#  Predicates
# ──────────────────────────────────────────────────────────────────

def _to_minutes(hhmm: str) -> int | None:
    parts = hhmm.split(":")
    if len(parts) != 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    return hours * 60 + minutes


def _minutes_between(start: str, end: str) -> int | None:
    a, b = _to_minutes(start), _to_minutes(end)
    if a is None or b is None:
        return None
    return b - a


def _subject_type(subject: str) -> tuple[bool, str]:
    """('PT MATH (Lab)') -> (True, 'MATH')."""
    norm = _PARENS_RE.sub("", subject).strip().upper()
    if norm.startswith(_PT_PREFIX):
        return True, norm[len(_PT_PREFIX):].lstrip()
    return False, norm


def naive_can_merge(current: TimetableEntry, nxt: TimetableEntry) -> bool:
    return _same_class(current, nxt) and current.time_end == nxt.time_start


def smart_can_merge(
    current: TimetableEntry,
    nxt: TimetableEntry,
    lunch_boundaries: frozenset[str] = LUNCH_BOUNDARIES,
    max_minutes: int = MAX_SESSION_MINUTES,
) -> bool:
    """
    naive_can_merge plus class-boundary rules.

    Lunch boundaries always split a block, and no block grows past
    max_minutes. PT sessions stay apart from the ordinary lesson of the
    same subject. Gaps are never bridged since the naive check already
    requires zero-gap contiguity.
    """
    if not naive_can_merge(current, nxt):
        return False

    if current.time_end in lunch_boundaries:
        return False

    span = _minutes_between(current.time_start, nxt.time_end)
    if span is None or span > max_minutes:
        return False

    return _subject_type(current.subject) == _subject_type(nxt.subject)


# ──────────────────────────────────────────────────────────────────
#  Public API
# ──────────────────────────────────────────────────────────────────

def merge_consecutive_time_blocks(entries: Iterable[TimetableEntry]) -> List[TimetableEntry]:
    return merge_time_blocks(entries, naive_can_merge)


def smart_merge_time_blocks(
    entries: Iterable[TimetableEntry],
    lunch_boundaries: Iterable[str] = LUNCH_BOUNDARIES,
    max_minutes: int = MAX_SESSION_MINUTES,
) -> List[TimetableEntry]:
    entries = list(entries)
    lunch = frozenset(lunch_boundaries)
    merged = merge_time_blocks(
        entries, lambda cur, nxt: smart_can_merge(cur, nxt, lunch, max_minutes)
    )
    log.info("Smart merge: %d entries -> %d merged entries", len(entries), len(merged))
    return merged


MERGE_POLICIES: Dict[str, Callable[[Iterable[TimetableEntry]], List[TimetableEntry]]] = {
    "naive": merge_consecutive_time_blocks,
    "smart": smart_merge_time_blocks,
}


def get_merge_policy(
    name: str, **options
) -> Callable[[Iterable[TimetableEntry]], List[TimetableEntry]]:
    """
    Look up a policy by name. options (lunch_boundaries, max_minutes) are
    bound into the smart policy; the naive policy takes none.
    """
    try:
        policy = MERGE_POLICIES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported merge policy: {name}. Use {' or '.join(MERGE_POLICIES)}."
        ) from None
    if not options:
        return policy
    if policy is merge_consecutive_time_blocks:
        raise ValueError(f"The naive merge policy takes no options, got {', '.join(sorted(options))}")
    return functools.partial(policy, **options)
