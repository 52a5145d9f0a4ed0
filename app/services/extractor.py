"""
Turns raw Open Dental schedule/appointment/slot records into typed blocks.

Field names differ between API versions and deployments, so every concept is
looked up through an ordered alias list. Schema drift is fixed here and only
here.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from app.core.logger import logger
from app.models.availability_models import BusyBlock, ScheduleBlock, SlotCandidate
from app.services.temporal import parse_date_time, parse_schedule_date_time

FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "schedule_start": ("StartTime", "startTime", "start_time", "DateTimeStart", "start", "Start"),
    "schedule_end": ("StopTime", "stopTime", "EndTime", "endTime", "end_time", "DateTimeEnd", "DateTimeStop", "end", "End"),
    "schedule_type": ("SchedType", "schedType", "BlockoutType", "blockoutType", "type"),
    "appointment_start": ("AptDateTime", "aptDateTime", "DateTimeStart", "StartTime", "start", "Start"),
    "appointment_end": ("AptDateTimeEnd", "DateTimeEnd", "DateTimeStop", "EndTime", "end", "End"),
    "appointment_status": ("AptStatus", "aptStatus", "status", "Status"),
    "appointment_pattern": ("Pattern", "pattern"),
    "slot_start": ("DateTimeStart", "dateTimeStart", "start", "Start", "StartTime", "AptDateTime"),
    "slot_end": ("DateTimeEnd", "dateTimeEnd", "DateTimeStop", "end", "End", "EndTime"),
    "provider": ("ProvNum", "provNum", "ProviderNum", "providerId", "provider_id"),
    "location": ("ClinicNum", "clinicNum", "locationId", "location_id"),
    "operatory": ("OperatoryNum", "Op", "OpNum", "opNum", "operatoryId", "operatory_id", "Operatories", "operatories"),
}

BLOCKOUT_MARKERS = ("blockout", "blocked")
# Open Dental patterns encode appointment length as one character per 5 minutes
PATTERN_MINUTES_PER_CHAR = 5


def first_present(record: Mapping[str, Any], concept: str) -> Any:
    """Value of the first alias of `concept` present (and non-empty) in the record."""
    for name in FIELD_ALIASES[concept]:
        value = record.get(name)
        if value is not None and value != "":
            return value
    return None


def coerce_id(value: Any) -> Optional[int]:
    """
    Read an Open Dental foreign key. 0 means "none" upstream, and a list of
    several ids (e.g. "3,5" operatories) can't be pinned to one, so both
    come back as None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (list, tuple)):
        return coerce_id(value[0]) if len(value) == 1 else None
    text = str(value).strip()
    if "," in text:
        parts = [p for p in text.split(",") if p.strip()]
        return coerce_id(parts[0]) if len(parts) == 1 else None
    try:
        number = int(float(text))
    except (ValueError, OverflowError):
        return None
    return number if number > 0 else None


def is_blocking_status(status: Any, non_blocking: Sequence[str] = ("cancel", "broken")) -> bool:
    """Everything blocks unless its status contains one of the non-blocking markers."""
    text = str(status or "").lower()
    return not any(marker.lower() in text for marker in non_blocking)


def _is_blockout(record: Mapping[str, Any]) -> bool:
    tag = str(first_present(record, "schedule_type") or "").lower()
    return any(marker in tag for marker in BLOCKOUT_MARKERS)


def _identifiers(record: Mapping[str, Any]) -> Dict[str, Optional[int]]:
    return {
        "provider_id": coerce_id(first_present(record, "provider")),
        "location_id": coerce_id(first_present(record, "location")),
        "operatory_id": coerce_id(first_present(record, "operatory")),
    }


def pattern_minutes(pattern: Any) -> int:
    if not pattern:
        return 0
    return len(str(pattern).strip()) * PATTERN_MINUTES_PER_CHAR


def _schedule_span(record: Mapping[str, Any]) -> Tuple[Optional[datetime], Optional[datetime]]:
    start = parse_schedule_date_time(record, first_present(record, "schedule_start"))
    end = parse_schedule_date_time(
        record,
        first_present(record, "schedule_end"),
        preferred_date=start.date() if start else None,
    )
    return start, end


def extract_schedule_blocks(records: Iterable[Any]) -> Tuple[List[ScheduleBlock], List[BusyBlock]]:
    """
    Normalise raw schedule records.
    Returns (working blocks, blockouts); blockouts are busy time, not working time.
    Records without a resolvable start and end are dropped.
    """
    working: List[ScheduleBlock] = []
    blockouts: List[BusyBlock] = []
    dropped = 0

    for record in records:
        if not isinstance(record, Mapping):
            dropped += 1
            continue

        start, end = _schedule_span(record)
        if start is None or end is None:
            dropped += 1
            continue

        try:
            if _is_blockout(record):
                blockouts.append(BusyBlock(start=start, end=end, status="Blockout", **_identifiers(record)))
            else:
                working.append(ScheduleBlock(
                    start=start,
                    end=end,
                    block_type=str(first_present(record, "schedule_type") or "working"),
                    **_identifiers(record),
                ))
        except ValidationError:
            dropped += 1

    if dropped:
        logger.debug(f"🧹 Dropped {dropped} unusable schedule record(s)")
    return working, blockouts


def extract_busy_blocks(
    records: Iterable[Any],
    duration_minutes: int,
    non_blocking: Sequence[str] = ("cancel", "broken"),
) -> List[BusyBlock]:
    """
    Normalise raw appointment records.
    A missing end falls back to the Pattern length, then to the requested
    duration so synthetic busy spans match the search granularity.
    """
    busy: List[BusyBlock] = []
    dropped = 0

    for record in records:
        if not isinstance(record, Mapping):
            dropped += 1
            continue

        start = parse_date_time(first_present(record, "appointment_start"))
        if start is None:
            dropped += 1
            continue

        end = parse_date_time(first_present(record, "appointment_end"))
        if end is None:
            minutes = pattern_minutes(first_present(record, "appointment_pattern")) or duration_minutes
            end = start + timedelta(minutes=minutes)

        status = str(first_present(record, "appointment_status") or "")
        try:
            busy.append(BusyBlock(
                start=start,
                end=end,
                status=status,
                blocking=is_blocking_status(status, non_blocking),
                **_identifiers(record),
            ))
        except ValidationError:
            dropped += 1

    if dropped:
        logger.debug(f"🧹 Dropped {dropped} unusable appointment record(s)")
    return busy


def extract_native_slots(records: Iterable[Any], duration_minutes: int) -> List[SlotCandidate]:
    """Read slot records returned by a native slots endpoint; unreadable ones are skipped."""
    slots: List[SlotCandidate] = []
    for record in records:
        if not isinstance(record, Mapping):
            continue
        start = parse_date_time(first_present(record, "slot_start"))
        if start is None:
            continue
        end = parse_date_time(first_present(record, "slot_end")) or start + timedelta(minutes=duration_minutes)
        try:
            slots.append(SlotCandidate(start=start, end=end, **_identifiers(record)))
        except ValidationError:
            continue
    return slots
