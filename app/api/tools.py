import json
from typing import Any, Awaitable, Callable, Dict, Mapping

from fastapi import APIRouter, Depends, Request

from app.core.config import settings
from app.core.security import verify_bearer_token
from app.services.appointment_service import AppointmentService
from app.services.availability_service import AvailabilityService
from app.services.opendental_client import OpenDentalClient

router = APIRouter(dependencies=[Depends(verify_bearer_token)])

opendental_client = OpenDentalClient(settings)
availability_service = AvailabilityService(opendental_client, settings)
appointment_service = AppointmentService(opendental_client, settings)


def _as_arguments(value: Any) -> Dict[str, Any]:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    return value if isinstance(value, dict) else {}


def extract_tool_args(body: Any) -> Dict[str, Any]:
    """
    Pull tool arguments out of whatever Vapi (or a test client) posted:
    a full tool-calls envelope, a bare {"arguments": ...}, or the arguments themselves.
    """
    if not isinstance(body, Mapping):
        return {}

    message = body.get("message")
    if isinstance(message, Mapping):
        calls = message.get("toolCalls") or message.get("toolCallList") or []
        if calls and isinstance(calls[0], Mapping):
            function = calls[0].get("function") or {}
            return _as_arguments(function.get("arguments"))
        return {}

    if "arguments" in body:
        return _as_arguments(body["arguments"])
    return dict(body)


def tool_handlers() -> Dict[str, Callable[[Mapping[str, Any]], Awaitable[Dict[str, Any]]]]:
    return {
        "opendental_getAvailableTimes": availability_service.get_available_times,
        "opendental_findPatient": appointment_service.find_patients,
        "opendental_getAppointments": appointment_service.get_appointments,
        "opendental_createAppointment": appointment_service.book_appointment,
        "opendental_rescheduleAppointment": appointment_service.reschedule_appointment,
        "opendental_cancelAppointment": appointment_service.cancel_appointment,
    }


async def _tool_args(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        body = {}
    return extract_tool_args(body)


@router.post("/vapi/opendental_getAvailableTimes")
async def get_available_times(request: Request):
    return await availability_service.get_available_times(await _tool_args(request))

@router.post("/vapi/opendental_findPatient")
async def find_patient(request: Request):
    return await appointment_service.find_patients(await _tool_args(request))

@router.post("/vapi/opendental_getAppointments")
async def get_appointments(request: Request):
    return await appointment_service.get_appointments(await _tool_args(request))

@router.post("/vapi/opendental_createAppointment")
async def create_appointment(request: Request):
    return await appointment_service.book_appointment(await _tool_args(request))

@router.post("/vapi/opendental_rescheduleAppointment")
async def reschedule_appointment(request: Request):
    return await appointment_service.reschedule_appointment(await _tool_args(request))

@router.post("/vapi/opendental_cancelAppointment")
async def cancel_appointment(request: Request):
    return await appointment_service.cancel_appointment(await _tool_args(request))
