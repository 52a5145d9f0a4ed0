import pytest
from unittest.mock import AsyncMock, MagicMock

from app.core.config import Settings
from app.services.appointment_service import AppointmentService, build_pattern
from app.services.opendental_client import OpenDentalError

PATIENTS = [
    {"PatNum": 11, "FName": "Jane", "LName": "Doe", "Birthdate": "1979-06-23"},
    {"PatNum": 12, "FName": "Jane", "LName": "Doe", "Birthdate": "1985-02-01"},
    {"PatNum": 13, "FName": "Jane", "LName": "Doe", "Birthdate": "0001-01-01"},
]

def make_service(**overrides):
    client = MagicMock()
    client.search_patients = AsyncMock(return_value=PATIENTS)
    client.get_appointments = AsyncMock(return_value=[])
    client.create_appointment = AsyncMock(return_value={"AptNum": 900})
    client.update_appointment = AsyncMock(return_value={"AptNum": 900})
    client.break_appointment = AsyncMock(return_value=None)
    return AppointmentService(client, Settings(**overrides)), client

def test_build_pattern():
    assert build_pattern(40) == "XXXXXXXX"
    assert build_pattern(3) == "X"

def test_normalize_name():
    service, _ = make_service()
    assert service.normalize_name("  jane   DOE ") == "Jane Doe"
    assert service.normalize_name(None) == ""

@pytest.mark.asyncio
async def test_find_patients_filters_by_spoken_birthdate():
    service, client = make_service()
    reply = await service.find_patients({"firstName": "jane", "lastName": "doe", "dateOfBirth": "June 23, 1979"})

    client.search_patients.assert_awaited_once_with(LName="Doe", FName="Jane", Phone="")
    # 13 has no birthdate on file, which never excludes
    assert [p["PatNum"] for p in reply["patients"]] == [11, 13]
    assert reply["result"] == "I found 2 patients matching those details."

@pytest.mark.asyncio
async def test_find_patients_unreadable_birthdate_does_not_filter():
    service, _ = make_service()
    reply = await service.find_patients({"lastName": "Doe", "dateOfBirth": "the summer of seventy nine"})

    assert len(reply["patients"]) == 3

@pytest.mark.asyncio
async def test_find_patients_single_match_and_phone_digits():
    service, client = make_service()
    client.search_patients.return_value = PATIENTS[:1]
    reply = await service.find_patients({"phone": "(555) 010-2000"})

    client.search_patients.assert_awaited_once_with(LName="", FName="", Phone="5550102000")
    assert reply["result"] == "I found Jane Doe."

@pytest.mark.asyncio
async def test_find_patients_needs_something_to_search():
    service, client = make_service()
    reply = await service.find_patients({"dateOfBirth": "1979-06-23"})

    assert reply["ok"] is False
    client.search_patients.assert_not_awaited()

@pytest.mark.asyncio
async def test_get_appointments_hides_cancelled_by_default():
    service, client = make_service()
    client.get_appointments.return_value = [
        {"AptNum": 2, "AptDateTime": "2025-01-09 10:00:00", "AptStatus": "Scheduled", "ProvNum": 1, "Op": 3},
        {"AptNum": 1, "AptDateTime": "2025-01-07 10:00:00", "AptStatus": "Scheduled"},
        {"AptNum": 3, "AptDateTime": "2025-01-08 10:00:00", "AptStatus": "Broken"},
    ]
    reply = await service.get_appointments({"patNum": "11"})

    client.get_appointments.assert_awaited_once_with(PatNum=11)
    assert [a["AptNum"] for a in reply["appointments"]] == [1, 2]
    assert reply["appointments"][1]["Op"] == 3

    everything = await service.get_appointments({"patNum": 11, "includeCancelled": True})
    assert len(everything["appointments"]) == 3

@pytest.mark.asyncio
async def test_book_appointment_payload():
    service, client = make_service(DEFAULT_OP_NUM=4, DEFAULT_PROV_NUM=1)
    reply = await service.book_appointment({
        "patNum": 11, "aptDateTime": "2025-01-06T09:30:00", "lengthMinutes": 30, "note": "Cleaning",
    })

    client.create_appointment.assert_awaited_once_with({
        "PatNum": 11,
        "AptDateTime": "2025-01-06 09:30:00",
        "Op": 4,
        "ProvNum": 1,
        "Pattern": "XXXXXX",
        "Note": "Cleaning",
    })
    assert reply["ok"] is True
    assert reply["AptNum"] == 900

@pytest.mark.asyncio
async def test_book_appointment_with_unreadable_length_uses_default():
    service, client = make_service(DEFAULT_OP_NUM=4, DEFAULT_PROV_NUM=1)
    reply = await service.book_appointment({
        "patNum": 11, "aptDateTime": "2025-01-06 09:30:00", "lengthMinutes": float("inf"),
    })

    assert reply["ok"] is True
    payload = client.create_appointment.await_args.args[0]
    assert payload["Pattern"] == "XXXXXXXX"

@pytest.mark.asyncio
async def test_book_appointment_surfaces_upstream_failure():
    service, client = make_service()
    client.create_appointment.side_effect = OpenDentalError(
        "Open Dental returned HTTP 400", status=400, url="https://od/appointments", raw="Op is invalid",
    )
    reply = await service.book_appointment({"patNum": 11, "aptDateTime": "2025-01-06 09:30:00"})

    assert reply["ok"] is False
    assert reply["status"] == 400
    assert reply["raw"] == "Op is invalid"
    assert client.create_appointment.await_count == 1

@pytest.mark.asyncio
async def test_book_appointment_requires_patient_and_time():
    service, client = make_service()
    reply = await service.book_appointment({"patNum": 11, "aptDateTime": "next tuesday-ish"})

    assert reply["ok"] is False
    client.create_appointment.assert_not_awaited()

@pytest.mark.asyncio
async def test_reschedule_appointment():
    service, client = make_service()
    reply = await service.reschedule_appointment({"aptNum": 900, "aptDateTime": "2025-01-07 14:00:00", "opNum": 2})

    client.update_appointment.assert_awaited_once_with(900, {"AptDateTime": "2025-01-07 14:00:00", "Op": 2})
    assert reply["ok"] is True

@pytest.mark.asyncio
async def test_cancel_appointment():
    service, client = make_service()
    reply = await service.cancel_appointment({"aptNum": "900"})

    client.break_appointment.assert_awaited_once_with(900, send_to_unscheduled_list=False)
    assert reply["ok"] is True

    missing = await service.cancel_appointment({})
    assert missing["ok"] is False
