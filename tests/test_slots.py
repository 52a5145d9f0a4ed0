import pytest
from datetime import datetime

from app.models.availability_models import Interval
from app.services.slots import align_forward, enumerate_slots

def at(hour, minute=0, second=0):
    return datetime(2025, 1, 6, hour, minute, second)

def test_align_forward_rounds_up_within_the_hour():
    assert align_forward(at(9, 3), 10) == at(9, 10)
    assert align_forward(at(9, 10), 10) == at(9, 10)
    assert align_forward(at(9, 55), 10) == at(10, 0)
    assert align_forward(at(9, 1), 15) == at(9, 15)

def test_align_forward_never_moves_backwards():
    # 09:10:30 is already past the 09:10 boundary
    assert align_forward(at(9, 10, 30), 10) == at(9, 20)

def test_enumerate_slots_steps_by_increment():
    slots = enumerate_slots(Interval(start=at(9), end=at(10)), 30, 10)
    assert [s.start for s in slots] == [at(9), at(9, 10), at(9, 20), at(9, 30)]
    assert all(s.minutes == 30 for s in slots)

def test_enumerate_slots_after_alignment_nothing_fits():
    assert enumerate_slots(Interval(start=at(9, 3), end=at(9, 35)), 30, 10) == []

@pytest.mark.parametrize("start,end,duration,increment", [
    (at(9, 3), at(12, 47), 30, 10),
    (at(8, 59, 59), at(11), 45, 15),
    (at(13, 7), at(17), 60, 20),
    (at(9), at(9, 30), 30, 5),
])
def test_enumerated_slots_fit_and_align(start, end, duration, increment):
    free = Interval(start=start, end=end)
    slots = enumerate_slots(free, duration, increment)
    assert slots
    for slot in slots:
        assert slot.start >= free.start
        assert slot.end <= free.end
        assert slot.minutes == duration
        assert slot.start.minute % increment == 0
        assert slot.start.second == 0 and slot.start.microsecond == 0

def test_enumerate_slots_respects_limit():
    slots = enumerate_slots(Interval(start=at(9), end=at(17)), 30, 10, limit=4)
    assert len(slots) == 4
    assert slots[0].start == at(9)

def test_enumerate_slots_carries_attribution():
    slots = enumerate_slots(Interval(start=at(9), end=at(10)), 60, 10, provider_id=2, location_id=5, operatory_id=7)
    assert len(slots) == 1
    assert (slots[0].provider_id, slots[0].location_id, slots[0].operatory_id) == (2, 5, 7)
