"""
Raw extraction batch -> validated, consolidated, merged TimetableData.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional

from .consolidate import consolidate_week_types
from .merge import get_merge_policy
from .models import TimetableData, TimetableEntry
from .validate import (
    MIN_PLAUSIBLE_ENTRIES,
    ValidationReport,
    get_entries,
    validate_timetable_data,
)

log = logging.getLogger(__name__)


@dataclass
class ProcessingResult:
    success: bool
    data: Optional[TimetableData] = None
    validation: Optional[ValidationReport] = None
    diagnostics: List[str] = field(default_factory=list)
    error: Optional[str] = None


def process_timetable(
    raw: Any,
    merge_policy: str = "smart",
    min_entries: int = MIN_PLAUSIBLE_ENTRIES,
    lunch_boundaries: Optional[Iterable[str]] = None,
    max_minutes: Optional[int] = None,
) -> ProcessingResult:
    """
    Normalise one raw extraction batch.

    Validation issues and consolidation anomalies are reported, not acted
    on; only a batch without an entries list fails outright. lunch_boundaries
    and max_minutes tune the smart policy; None keeps its defaults.
    """
    options = {}
    if lunch_boundaries is not None:
        options["lunch_boundaries"] = frozenset(lunch_boundaries)
    if max_minutes is not None:
        options["max_minutes"] = max_minutes
    merge = get_merge_policy(merge_policy, **options)
    validation = validate_timetable_data(raw, min_entries=min_entries)
    for issue in validation.issues:
        log.warning("Validation: %s", issue)

    raw_entries = get_entries(raw)
    if raw_entries is None:
        return ProcessingResult(
            success=False,
            validation=validation,
            error="Extraction result has no entries list",
        )

    diagnostics: List[str] = []
    entries: List[TimetableEntry] = []
    for i, item in enumerate(raw_entries):
        if isinstance(item, Mapping):
            entries.append(TimetableEntry.from_raw(item))
        else:
            diagnostics.append(f"Entry {i} is not an object and was skipped: {item!r}")

    consolidated = consolidate_week_types(entries, diagnostics)
    merged = merge(consolidated)

    log.info(
        "Processing summary: %d raw -> %d consolidated -> %d merged entries",
        len(raw_entries), len(consolidated), len(merged),
    )

    student_name = raw.get("studentName")
    term = raw.get("term")
    return ProcessingResult(
        success=True,
        data=TimetableData(
            entries=merged,
            student_name=student_name if isinstance(student_name, str) else None,
            term=term if isinstance(term, str) else None,
        ),
        validation=validation,
        diagnostics=diagnostics,
    )
