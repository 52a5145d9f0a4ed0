"""Enumerates fixed-length, aligned appointment slots inside free intervals."""
from datetime import datetime, timedelta
from typing import List, Optional

from app.models.availability_models import Interval, SlotCandidate


def align_forward(moment: datetime, increment_minutes: int) -> datetime:
    """
    Round up to the next multiple of `increment_minutes` within the hour,
    e.g. 09:03 -> 09:10 for a 10 minute increment. Seconds are dropped.
    """
    base = moment.replace(second=0, microsecond=0)
    remainder = base.minute % increment_minutes
    if remainder:
        return base + timedelta(minutes=increment_minutes - remainder)
    if base < moment:
        return base + timedelta(minutes=increment_minutes)
    return base


def enumerate_slots(
    free: Interval,
    duration_minutes: int,
    increment_minutes: int,
    limit: Optional[int] = None,
    provider_id: Optional[int] = None,
    location_id: Optional[int] = None,
    operatory_id: Optional[int] = None,
) -> List[SlotCandidate]:
    """
    Walk `free` in `increment_minutes` steps and emit every
    [cursor, cursor + duration) that fits. Slots overlap when the increment is
    shorter than the duration; that gives callers finer start-time choice.
    """
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=increment_minutes)

    slots: List[SlotCandidate] = []
    cursor = align_forward(free.start, increment_minutes)
    while cursor + duration <= free.end:
        if limit is not None and len(slots) >= limit:
            break
        slots.append(SlotCandidate(
            start=cursor,
            end=cursor + duration,
            provider_id=provider_id,
            location_id=location_id,
            operatory_id=operatory_id,
        ))
        cursor += step
    return slots
