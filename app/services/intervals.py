"""Interval algebra used to carve busy time out of working schedules."""
from typing import Iterable, List

from app.models.availability_models import Interval


def _piece(start, end) -> List[Interval]:
    if end <= start:
        return []
    return [Interval(start=start, end=end)]


def subtract(free: Iterable[Interval], busy: Interval) -> List[Interval]:
    """
    Remove `busy` from every interval in `free`.
    Each free interval is kept as is, dropped, or split into the parts
    before busy.start and after busy.end. Empty remainders are discarded.
    """
    remaining: List[Interval] = []
    for interval in free:
        if not interval.overlaps(busy):
            remaining.append(interval)
            continue
        if busy.covers(interval):
            continue
        remaining.extend(_piece(interval.start, busy.start))
        remaining.extend(_piece(busy.end, interval.end))
    return remaining


def free_intervals(block: Interval, busy: Iterable[Interval]) -> List[Interval]:
    """Free remainder of one schedule block after removing every overlapping busy span."""
    free: List[Interval] = [Interval(start=block.start, end=block.end)]
    for span in busy:
        if not free:
            break
        if not span.overlaps(block):
            continue
        free = subtract(free, span)
    return free
