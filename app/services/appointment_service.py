from typing import Any, Dict, List, Mapping

from app.core.config import Settings
from app.core.logger import logger
from app.services.extractor import PATTERN_MINUTES_PER_CHAR, coerce_id, first_present, is_blocking_status
from app.services.opendental_client import OpenDentalClient, OpenDentalError
from app.services.temporal import format_date_time, normalize_date_of_birth, normalize_date_only, parse_date_time

DEFAULT_APPOINTMENT_MINUTES = 40
# Open Dental stores "no birthdate" as the minimum date
OPEN_DENTAL_NULL_DATE = "0001-01-01"


def _arg(args: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = args.get(name)
        if value is not None and value != "":
            return value
    return None


def build_pattern(length_minutes: int) -> str:
    """Open Dental encodes appointment length as one 'X' per 5 minutes."""
    return "X" * max(1, int(length_minutes) // PATTERN_MINUTES_PER_CHAR)


def _upstream_failure(message: str, error: OpenDentalError) -> Dict[str, Any]:
    logger.error(f"❌ {message}: {error} (status={error.status})")
    return {"ok": False, "result": message, **error.to_dict()}


class AppointmentService:
    """Patient lookup and appointment writes. Writes are sent once, never retried."""

    def __init__(self, client: OpenDentalClient, settings: Settings):
        self.client = client
        self.settings = settings

    def normalize_name(self, name: Any) -> str:
        """
        Cleans up a spoken name: trims whitespace and title-cases it.
        """
        if not name:
            return ""
        return " ".join(str(name).split()).title()

    async def find_patients(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        last_name = self.normalize_name(_arg(args, "LName", "lastName", "last_name"))
        first_name = self.normalize_name(_arg(args, "FName", "firstName", "first_name"))
        phone = "".join(ch for ch in str(_arg(args, "phone", "Phone", "phoneNumber") or "") if ch.isdigit())
        birthdate = normalize_date_of_birth(_arg(args, "dateOfBirth", "dob", "birthdate", "Birthdate"))

        if not (last_name or first_name or phone):
            return {"ok": False, "result": "Please tell me the patient's name or phone number.", "patients": []}

        try:
            records = await self.client.search_patients(LName=last_name, FName=first_name, Phone=phone)
        except OpenDentalError as e:
            return _upstream_failure("I couldn't look up that patient right now.", e)

        patients = []
        for record in records:
            if not isinstance(record, Mapping):
                continue
            record_birthdate = normalize_date_only(record.get("Birthdate"))
            if record_birthdate == OPEN_DENTAL_NULL_DATE:
                record_birthdate = ""
            # An unreadable birthdate on either side never excludes a patient
            if birthdate and record_birthdate and record_birthdate != birthdate:
                continue
            patients.append({
                "PatNum": coerce_id(record.get("PatNum")),
                "FName": record.get("FName", ""),
                "LName": record.get("LName", ""),
                "Birthdate": record_birthdate or record.get("Birthdate"),
            })

        logger.info(f"🔍 Patient lookup matched {len(patients)} of {len(records)} record(s)")
        if not patients:
            result = "I couldn't find a patient with those details."
        elif len(patients) == 1:
            name = " ".join(p for p in (patients[0]["FName"], patients[0]["LName"]) if p)
            result = f"I found {name}."
        else:
            result = f"I found {len(patients)} patients matching those details."
        return {"ok": True, "result": result, "patients": patients}

    async def get_appointments(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        pat_num = coerce_id(_arg(args, "patNum", "PatNum", "patientId"))
        if not pat_num:
            return {"ok": False, "result": "I need the patient number to look up appointments.", "appointments": []}

        include_cancelled = str(_arg(args, "includeCancelled") or "").lower() in ("1", "true", "yes")
        try:
            records = await self.client.get_appointments(PatNum=pat_num)
        except OpenDentalError as e:
            return _upstream_failure("I couldn't pull up that patient's appointments right now.", e)

        appointments: List[Dict[str, Any]] = []
        for record in records:
            if not isinstance(record, Mapping):
                continue
            start = parse_date_time(first_present(record, "appointment_start"))
            if start is None:
                continue
            status = str(first_present(record, "appointment_status") or "")
            if not include_cancelled and not is_blocking_status(status, self.settings.NON_BLOCKING_STATUSES):
                continue
            appointments.append({
                "AptNum": coerce_id(record.get("AptNum")),
                "AptDateTime": format_date_time(start),
                "AptStatus": status,
                "ProvNum": coerce_id(first_present(record, "provider")),
                "Op": coerce_id(first_present(record, "operatory")),
            })

        appointments.sort(key=lambda a: a["AptDateTime"])
        if not appointments:
            result = "I don't see any appointments on file for that patient."
        else:
            result = f"I see {len(appointments)} appointment(s), the next one on {appointments[0]['AptDateTime']}."
        return {"ok": True, "result": result, "appointments": appointments}

    def _length(self, args: Mapping[str, Any]) -> int:
        try:
            return int(float(_arg(args, "lengthMinutes", "length", "durationMinutes") or DEFAULT_APPOINTMENT_MINUTES))
        except (TypeError, ValueError, OverflowError):
            return DEFAULT_APPOINTMENT_MINUTES

    async def book_appointment(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        pat_num = coerce_id(_arg(args, "patNum", "PatNum", "patientId"))
        start = parse_date_time(_arg(args, "aptDateTime", "AptDateTime", "dateTime", "start"))
        if not pat_num or start is None:
            return {"ok": False, "result": "I need the patient and the appointment date and time to book."}

        payload: Dict[str, Any] = {
            "PatNum": pat_num,
            "AptDateTime": format_date_time(start),
            "Op": coerce_id(_arg(args, "opNum", "OpNum", "Op")) or self.settings.DEFAULT_OP_NUM,
            "ProvNum": coerce_id(_arg(args, "provNum", "ProvNum")) or self.settings.DEFAULT_PROV_NUM,
            "Pattern": build_pattern(self._length(args)),
        }
        clinic = coerce_id(_arg(args, "clinicNum", "ClinicNum")) or self.settings.DEFAULT_CLINIC_NUM
        if clinic:
            payload["ClinicNum"] = clinic
        note = _arg(args, "note", "Note")
        if note:
            payload["Note"] = str(note)
        payload = {k: v for k, v in payload.items() if v is not None}

        logger.info(f"📥 Booking PatNum={pat_num} at {payload['AptDateTime']}")
        try:
            created = await self.client.create_appointment(payload)
        except OpenDentalError as e:
            return _upstream_failure("I wasn't able to book that appointment.", e)

        apt_num = coerce_id(created.get("AptNum")) if isinstance(created, Mapping) else None
        return {
            "ok": True,
            "result": f"You're booked for {payload['AptDateTime']}.",
            "AptNum": apt_num,
            "appointment": created,
        }

    async def reschedule_appointment(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        apt_num = coerce_id(_arg(args, "aptNum", "AptNum", "appointmentId"))
        start = parse_date_time(_arg(args, "aptDateTime", "AptDateTime", "dateTime", "start"))
        if not apt_num or start is None:
            return {"ok": False, "result": "I need the appointment and the new date and time to reschedule."}

        payload: Dict[str, Any] = {"AptDateTime": format_date_time(start)}
        op = coerce_id(_arg(args, "opNum", "OpNum", "Op"))
        if op:
            payload["Op"] = op
        prov = coerce_id(_arg(args, "provNum", "ProvNum"))
        if prov:
            payload["ProvNum"] = prov
        if _arg(args, "lengthMinutes", "length", "durationMinutes") is not None:
            payload["Pattern"] = build_pattern(self._length(args))

        logger.info(f"🔁 Rescheduling AptNum={apt_num} to {payload['AptDateTime']}")
        try:
            updated = await self.client.update_appointment(apt_num, payload)
        except OpenDentalError as e:
            return _upstream_failure("I wasn't able to move that appointment.", e)

        return {
            "ok": True,
            "result": f"Your appointment has been moved to {payload['AptDateTime']}.",
            "AptNum": apt_num,
            "appointment": updated,
        }

    async def cancel_appointment(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        apt_num = coerce_id(_arg(args, "aptNum", "AptNum", "appointmentId"))
        if not apt_num:
            return {"ok": False, "result": "I need the appointment number to cancel it."}

        to_unscheduled = str(_arg(args, "sendToUnscheduledList") or "").lower() in ("1", "true", "yes")
        logger.info(f"🗑️ Breaking AptNum={apt_num}")
        try:
            await self.client.break_appointment(apt_num, send_to_unscheduled_list=to_unscheduled)
        except OpenDentalError as e:
            return _upstream_failure("I wasn't able to cancel that appointment.", e)

        return {"ok": True, "result": "Your appointment has been cancelled.", "AptNum": apt_num}
