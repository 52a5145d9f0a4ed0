from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, model_validator

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class Interval(BaseModel):
    """Half-open span [start, end) of zone-naive datetimes."""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self):
        if self.end <= self.start:
            raise ValueError(f"Interval end {self.end} must be after start {self.start}")
        return self

    @property
    def minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def covers(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


class ScheduleBlock(Interval):
    provider_id: Optional[int] = None
    location_id: Optional[int] = None
    operatory_id: Optional[int] = None
    block_type: str = "working"


class BusyBlock(Interval):
    provider_id: Optional[int] = None
    location_id: Optional[int] = None
    operatory_id: Optional[int] = None
    status: str = ""
    blocking: bool = True


class SlotCandidate(Interval):
    provider_id: Optional[int] = None
    location_id: Optional[int] = None
    operatory_id: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "start": self.start.strftime(DATETIME_FORMAT),
            "end": self.end.strftime(DATETIME_FORMAT),
            "lengthMinutes": int(self.minutes),
            "ProvNum": self.provider_id,
            "ClinicNum": self.location_id,
            "OpNum": self.operatory_id,
        }


class AvailabilityQuery(BaseModel):
    """Resolved availability request. Built once per request, never mutated."""
    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date
    duration_minutes: int = 60
    increment_minutes: int = 10
    provider_id: Optional[int] = None
    # 0 means "any clinic"
    location_id: int = 0
    operatory_id: Optional[int] = None

    @property
    def window(self) -> Interval:
        return Interval(
            start=datetime.combine(self.start_date, datetime.min.time()),
            end=datetime.combine(self.end_date + timedelta(days=1), datetime.min.time()),
        )

