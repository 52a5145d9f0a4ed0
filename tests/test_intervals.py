import pytest
from datetime import datetime, timedelta

from app.models.availability_models import Interval
from app.services.intervals import free_intervals, subtract

def at(hour, minute=0):
    return datetime(2025, 1, 6, hour, minute)

def span(start, end):
    return Interval(start=start, end=end)

def total_minutes(intervals):
    return sum(i.minutes for i in intervals)

def test_interval_rejects_empty_or_inverted():
    with pytest.raises(ValueError):
        span(at(10), at(10))
    with pytest.raises(ValueError):
        span(at(11), at(10))

def test_subtract_without_overlap_keeps_interval():
    free = [span(at(9), at(10))]
    assert subtract(free, span(at(10), at(11))) == free
    assert subtract(free, span(at(7), at(9))) == free

def test_subtract_covering_busy_drops_interval():
    assert subtract([span(at(9), at(10))], span(at(9), at(10))) == []
    assert subtract([span(at(9), at(10))], span(at(8), at(11))) == []

def test_subtract_splits_around_busy():
    result = subtract([span(at(9), at(12))], span(at(10), at(10, 30)))
    assert result == [span(at(9), at(10)), span(at(10, 30), at(12))]

def test_subtract_trims_edges():
    assert subtract([span(at(9), at(12))], span(at(8), at(10))) == [span(at(10), at(12))]
    assert subtract([span(at(9), at(12))], span(at(11), at(13))) == [span(at(9), at(11))]

@pytest.mark.parametrize("busy", [
    (at(8), at(9, 30)),
    (at(9, 15), at(9, 45)),
    (at(9, 30), at(11)),
    (at(8), at(11)),
    (at(10), at(11)),
    (at(9), at(10)),
])
def test_subtract_conserves_time(busy):
    free = span(at(9), at(10))
    busy_interval = span(*busy)
    remainder = subtract([free], busy_interval)

    overlap_start = max(free.start, busy_interval.start)
    overlap_end = min(free.end, busy_interval.end)
    overlap = max(timedelta(0), overlap_end - overlap_start).total_seconds() / 60

    assert total_minutes(remainder) + overlap == free.minutes
    assert all(piece.end > piece.start for piece in remainder)
    assert all(free.covers(piece) and not piece.overlaps(busy_interval) for piece in remainder)

def test_subtract_is_idempotent():
    free = [span(at(9), at(12)), span(at(13), at(17))]
    busy = span(at(11), at(14))
    once = subtract(free, busy)
    assert subtract(once, busy) == once

def test_free_intervals_applies_every_busy_span():
    block = span(at(9), at(17))
    busy = [span(at(10), at(11)), span(at(12), at(13)), span(at(18), at(19))]
    assert free_intervals(block, busy) == [
        span(at(9), at(10)),
        span(at(11), at(12)),
        span(at(13), at(17)),
    ]

def test_free_intervals_fully_booked_block():
    block = span(at(9), at(10))
    assert free_intervals(block, [span(at(9), at(10)), span(at(9, 30), at(9, 45))]) == []

def test_free_intervals_without_busy():
    block = span(at(9), at(10))
    assert free_intervals(block, []) == [block]
