"""
Interval merging for busy periods.

Pure domain logic: no I/O, safe to call from any thread.
"""

import logging
from typing import Iterable, List

from .models import BusyPeriod

logger = logging.getLogger(__name__)


def merge_busy_periods(periods: Iterable[BusyPeriod]) -> List[BusyPeriod]:
    """
    Merge overlapping or touching busy periods.

    The result is sorted by start time, pairwise disjoint and non-touching,
    i.e. the minimal set of periods covering the same union of time.

    Example: [10:00-11:00, 10:30-11:30, 11:30-12:00] -> [10:00-12:00]
    """
    valid: List[BusyPeriod] = []
    for period in periods:
        if period.is_malformed():
            logger.warning("Dropping malformed busy period (end before start): %s", period)
            continue
        valid.append(period)

    if not valid:
        return []

    sorted_periods = sorted(valid, key=lambda p: p.start)
    merged: List[BusyPeriod] = []
    current = sorted_periods[0]

    for period in sorted_periods[1:]:
        if period.start <= current.end:
            # Overlap or exact touch: extend the accumulator
            if period.end > current.end:
                current = BusyPeriod(start=current.start, end=period.end)
        else:
            merged.append(current)
            current = period

    merged.append(current)
    return merged
