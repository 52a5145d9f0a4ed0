from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from app.core.config import Settings
from app.core.logger import logger
from app.models.availability_models import AvailabilityQuery, BusyBlock, Interval, ScheduleBlock, SlotCandidate
from app.services.extractor import (
    coerce_id,
    extract_busy_blocks,
    extract_native_slots,
    extract_schedule_blocks,
)
from app.services.intervals import free_intervals
from app.services.opendental_client import OpenDentalClient, OpenDentalError
from app.services.slots import enumerate_slots
from app.services.temporal import normalize_date_only

MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 480
# Increments must divide an hour so every slot start stays aligned
ALLOWED_INCREMENTS = (5, 10, 15, 20, 30, 60)

NO_AVAILABILITY_MESSAGE = "I don't see any open times in that date range."
FAILURE_MESSAGE = "I couldn't pull up availability right now."

QUERY_ARG_ALIASES = {
    "start_date": ("dateStart", "startDate", "date_start", "start_date", "date"),
    "end_date": ("dateEnd", "endDate", "date_end", "end_date"),
    "duration": ("lengthMinutes", "length", "durationMinutes", "duration"),
    "increment": ("incrementMinutes", "increment"),
    "provider": ("provNum", "ProvNum", "providerId", "provider_id"),
    "operatory": ("opNum", "OpNum", "operatoryId", "operatory_id"),
    "location": ("clinicNum", "ClinicNum", "locationId", "location_id"),
}


def _arg(args: Mapping[str, Any], key: str) -> Any:
    for name in QUERY_ARG_ALIASES[key]:
        value = args.get(name)
        if value is not None and value != "":
            return value
    return None


def _bounded_int(value: Any, default: int, low: int, high: int) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(low, min(high, number))


def _aligned_increment(value: Any, default: int) -> int:
    requested = _bounded_int(value, default, ALLOWED_INCREMENTS[0], ALLOWED_INCREMENTS[-1])
    return max(i for i in ALLOWED_INCREMENTS if i <= requested)


def _matches(constraint: Optional[int], value: Optional[int]) -> bool:
    """Missing information on either side is never a mismatch."""
    if not constraint or value is None:
        return True
    return int(constraint) == int(value)


def _spoken(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{moment:%A}, {moment:%B} {moment.day} at {hour}:{moment:%M} {meridiem}"


def describe_slots(slots: List[SlotCandidate]) -> str:
    """Sentence the assistant can read out for the first few slots."""
    if not slots:
        return NO_AVAILABILITY_MESSAGE

    top = [_spoken(s.start) for s in slots[:3]]
    if len(top) == 1:
        return f"The first available time is {top[0]}. Would you like to book it?"
    if len(top) == 2:
        return f"The first available times are {top[0]} or {top[1]}. Which one would you like?"
    return f"The first available times are {top[0]}, {top[1]}, or {top[2]}. Which one would you like?"


class AvailabilityService:
    def __init__(self, client: OpenDentalClient, settings: Settings):
        self.client = client
        self.settings = settings

    def resolve_query(self, args: Mapping[str, Any], today: Optional[date] = None) -> AvailabilityQuery:
        """
        Build the query from loosely typed tool arguments.
        Anything missing or unreadable falls back to its default.
        """
        today = today or date.today()
        range_days = timedelta(days=self.settings.DEFAULT_RANGE_DAYS)

        start = normalize_date_only(_arg(args, "start_date"))
        start_date = date.fromisoformat(start) if start else today

        end = normalize_date_only(_arg(args, "end_date"))
        end_date = date.fromisoformat(end) if end else start_date + range_days
        if end_date < start_date:
            logger.info(f"📆 End date {end_date} precedes start {start_date}, using default range")
            end_date = start_date + range_days

        return AvailabilityQuery(
            start_date=start_date,
            end_date=end_date,
            duration_minutes=_bounded_int(
                _arg(args, "duration"), self.settings.DEFAULT_DURATION_MINUTES,
                MIN_DURATION_MINUTES, MAX_DURATION_MINUTES,
            ),
            increment_minutes=_aligned_increment(_arg(args, "increment"), self.settings.DEFAULT_INCREMENT_MINUTES),
            provider_id=coerce_id(_arg(args, "provider")) or self.settings.DEFAULT_PROV_NUM,
            location_id=coerce_id(_arg(args, "location")) or self.settings.DEFAULT_CLINIC_NUM or 0,
            operatory_id=coerce_id(_arg(args, "operatory")) or self.settings.DEFAULT_OP_NUM,
        )

    def _schedule_matches(self, query: AvailabilityQuery, block: ScheduleBlock) -> bool:
        return (
            _matches(query.provider_id, block.provider_id)
            and _matches(query.location_id, block.location_id)
            and _matches(query.operatory_id, block.operatory_id)
        )

    @staticmethod
    def _busy_applies(block: ScheduleBlock, busy: BusyBlock) -> bool:
        return (
            busy.blocking
            and _matches(block.provider_id, busy.provider_id)
            and _matches(block.location_id, busy.location_id)
            and _matches(block.operatory_id, busy.operatory_id)
        )

    @staticmethod
    def _clip(block: ScheduleBlock, window: Interval) -> ScheduleBlock:
        """Trim a block that runs past either edge of the requested range. Caller checks overlap."""
        return block.model_copy(update={
            "start": max(block.start, window.start),
            "end": min(block.end, window.end),
        })

    def _failure(self, error: str, diagnostic: Dict[str, Any]) -> Dict[str, Any]:
        logger.error(f"❌ Availability failed: {error}")
        return {"ok": False, "error": error, "result": FAILURE_MESSAGE, "diagnostic": diagnostic}

    async def _fetch_appointments(self, query: AvailabilityQuery, provenance: Dict[str, Any]) -> Optional[List[Any]]:
        """Range-scoped read first, the full list second. None when both fail."""
        date_start, date_end = query.start_date.isoformat(), query.end_date.isoformat()
        tried = []
        for scoped in (True, False):
            path = "appointments?dateStart&dateEnd" if scoped else "appointments"
            try:
                if scoped:
                    records = await self.client.get_appointments(date_start, date_end)
                else:
                    records = await self.client.get_appointments()
            except OpenDentalError as e:
                tried.append({"path": path, "ok": False, "status": e.status, "error": str(e)})
                continue
            tried.append({"path": path, "ok": True, "count": len(records)})
            provenance["appointments"] = {"attempts": tried, "degraded": False}
            return records

        provenance["appointments"] = {"attempts": tried, "degraded": True}
        return None

    async def compute_availability(self, query: AvailabilityQuery) -> Dict[str, Any]:
        """
        Native slots endpoint first; when it yields nothing, compute slots from
        schedules minus appointments. Returns {"ok", "source", "slots",
        "provenance"} or a structured failure when schedules can't be read.
        """
        cap = self.settings.SLOT_RESULT_CAP
        provenance: Dict[str, Any] = {"query": query.model_dump(mode="json")}

        records, native_path, attempts = await self.client.try_native_slots(query)
        provenance["native"] = {"path": native_path, "attempts": attempts}
        if records:
            native_slots = sorted(extract_native_slots(records, query.duration_minutes), key=lambda s: s.start)
            if native_slots:
                logger.info(f"✅ {len(native_slots)} native slot(s) from {native_path}")
                return {"ok": True, "source": "native", "slots": native_slots[:cap], "provenance": provenance}
            logger.info(f"↪️ Native slots from {native_path} were unreadable, computing instead")

        date_start, date_end = query.start_date.isoformat(), query.end_date.isoformat()
        try:
            raw_schedules = await self.client.get_schedules(date_start, date_end, provider_id=query.provider_id)
        except OpenDentalError as e:
            provenance["schedules"] = {"path": "schedules", "ok": False}
            return self._failure(
                "Could not load provider schedules from Open Dental",
                {**provenance, "upstream": e.to_dict()},
            )
        provenance["schedules"] = {"path": "schedules", "ok": True, "count": len(raw_schedules)}

        raw_appointments = await self._fetch_appointments(query, provenance)
        if raw_appointments is None:
            if self.settings.APPOINTMENTS_FAILURE_POLICY == "fatal":
                return self._failure("Could not load existing appointments from Open Dental", provenance)
            logger.warning("⚠️ Appointments unavailable, treating the range as unbooked")
            raw_appointments = []

        working, blockouts = extract_schedule_blocks(raw_schedules)
        busy = blockouts + extract_busy_blocks(
            raw_appointments, query.duration_minutes, self.settings.NON_BLOCKING_STATUSES
        )

        window = query.window
        blocks = sorted(
            (b for b in working if b.overlaps(window) and self._schedule_matches(query, b)),
            key=lambda b: b.start,
        )
        provenance["schedules"]["blocks"] = len(blocks)
        provenance["appointments"]["busy"] = sum(1 for b in busy if b.blocking)

        # Every block offers up to `cap` of its own earliest slots; the merged
        # list keeps the earliest overall so one provider can't fill the cap alone.
        slots: List[SlotCandidate] = []
        for block in blocks:
            block = self._clip(block, window)
            relevant = [b for b in busy if self._busy_applies(block, b)]
            block_slots: List[SlotCandidate] = []
            for free in free_intervals(block, relevant):
                block_slots.extend(enumerate_slots(
                    free,
                    query.duration_minutes,
                    query.increment_minutes,
                    limit=cap - len(block_slots),
                    provider_id=query.provider_id or block.provider_id,
                    location_id=query.location_id or block.location_id,
                    operatory_id=query.operatory_id or block.operatory_id,
                ))
                if len(block_slots) >= cap:
                    break
            slots.extend(block_slots)

        slots.sort(key=lambda s: s.start)
        slots = slots[:cap]
        logger.info(f"🧮 Computed {len(slots)} slot(s) from {len(blocks)} schedule block(s)")
        return {"ok": True, "source": "computed", "slots": slots, "provenance": provenance}

    async def get_available_times(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        """Tool entry point: resolve arguments, compute, and shape the reply for the assistant."""
        query = self.resolve_query(args)
        logger.info(
            f"🔎 Availability {query.start_date}..{query.end_date} "
            f"{query.duration_minutes}min prov={query.provider_id} op={query.operatory_id} clinic={query.location_id}"
        )

        outcome = await self.compute_availability(query)
        if not outcome["ok"]:
            return outcome

        slots = [s.to_payload() for s in outcome["slots"]]
        return {
            "ok": True,
            "result": describe_slots(outcome["slots"]),
            "source": outcome["source"],
            "firstSlot": slots[0] if slots else None,
            "slots": slots,
            "provenance": outcome["provenance"],
        }
