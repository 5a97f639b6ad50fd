"""
Overlap rule for meets.

Meets are half-open intervals [start, end). Two meets conflict iff each
starts before the other ends; meets that merely touch (one ends exactly when
the next starts) do not conflict.

OVERLAP_SQL is the same rule as a WHERE fragment over the meets table, with
parameters (candidate_end, candidate_start).
"""

from collections.abc import Iterable
from datetime import datetime

from .models import Meet

OVERLAP_SQL = "start_time < ? AND end_time > ?"


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    return start1 < end2 and end1 > start2


def find_conflicts(
    start: datetime,
    end: datetime,
    meets: Iterable[Meet],
    exclude_uuid: str | None = None,
) -> list[Meet]:
    """Return the meets overlapping [start, end), skipping `exclude_uuid`."""
    return [
        m
        for m in meets
        if not (exclude_uuid and m.uuid == exclude_uuid)
        and intervals_overlap(m.start, m.end, start, end)
    ]
