# Tool definitions for Vapi/LLM function calling

GET_AVAILABLE_TIMES_TOOL = {
    "type": "function",
    "function": {
        "name": "opendental_getAvailableTimes",
        "description": "List open appointment times in a date range.",
        "parameters": {
            "type": "object",
            "properties": {
                "dateStart": {
                    "type": "string",
                    "description": "First day to search, YYYY-MM-DD. Defaults to today."
                },
                "dateEnd": {
                    "type": "string",
                    "description": "Last day to search, YYYY-MM-DD. Defaults to a week after dateStart."
                },
                "lengthMinutes": {
                    "type": "integer",
                    "description": "Appointment length in minutes (e.g. 60)."
                },
                "provNum": {
                    "type": "integer",
                    "description": "Provider number, if the caller asked for a specific provider."
                },
                "opNum": {
                    "type": "integer",
                    "description": "Operatory number, if known."
                }
            },
            "required": []
        }
    }
}

FIND_PATIENT_TOOL = {
    "type": "function",
    "function": {
        "name": "opendental_findPatient",
        "description": "Find a patient by name, phone number and date of birth.",
        "parameters": {
            "type": "object",
            "properties": {
                "firstName": {"type": "string", "description": "Patient first name."},
                "lastName": {"type": "string", "description": "Patient last name."},
                "phone": {"type": "string", "description": "Patient phone number."},
                "dateOfBirth": {
                    "type": "string",
                    "description": "Date of birth as said by the caller (e.g. 'June 23 1979' or '06/23/1979')."
                }
            },
            "required": []
        }
    }
}

GET_APPOINTMENTS_TOOL = {
    "type": "function",
    "function": {
        "name": "opendental_getAppointments",
        "description": "List a patient's upcoming appointments.",
        "parameters": {
            "type": "object",
            "properties": {
                "patNum": {"type": "integer", "description": "Patient number from opendental_findPatient."}
            },
            "required": ["patNum"]
        }
    }
}

CREATE_APPOINTMENT_TOOL = {
    "type": "function",
    "function": {
        "name": "opendental_createAppointment",
        "description": "Book an appointment at a time returned by opendental_getAvailableTimes.",
        "parameters": {
            "type": "object",
            "properties": {
                "patNum": {"type": "integer", "description": "Patient number."},
                "aptDateTime": {"type": "string", "description": "Start, YYYY-MM-DD HH:MM:SS."},
                "lengthMinutes": {"type": "integer", "description": "Appointment length in minutes."},
                "provNum": {"type": "integer", "description": "Provider number of the chosen slot."},
                "opNum": {"type": "integer", "description": "Operatory number of the chosen slot."},
                "note": {"type": "string", "description": "Reason for the visit."}
            },
            "required": ["patNum", "aptDateTime"]
        }
    }
}

RESCHEDULE_APPOINTMENT_TOOL = {
    "type": "function",
    "function": {
        "name": "opendental_rescheduleAppointment",
        "description": "Move an existing appointment to a new time.",
        "parameters": {
            "type": "object",
            "properties": {
                "aptNum": {"type": "integer", "description": "Appointment number."},
                "aptDateTime": {"type": "string", "description": "New start, YYYY-MM-DD HH:MM:SS."},
                "provNum": {"type": "integer", "description": "Provider number of the new slot."},
                "opNum": {"type": "integer", "description": "Operatory number of the new slot."}
            },
            "required": ["aptNum", "aptDateTime"]
        }
    }
}

CANCEL_APPOINTMENT_TOOL = {
    "type": "function",
    "function": {
        "name": "opendental_cancelAppointment",
        "description": "Cancel an existing appointment.",
        "parameters": {
            "type": "object",
            "properties": {
                "aptNum": {"type": "integer", "description": "Appointment number."}
            },
            "required": ["aptNum"]
        }
    }
}

ALL_TOOLS = [
    GET_AVAILABLE_TIMES_TOOL,
    FIND_PATIENT_TOOL,
    GET_APPOINTMENTS_TOOL,
    CREATE_APPOINTMENT_TOOL,
    RESCHEDULE_APPOINTMENT_TOOL,
    CANCEL_APPOINTMENT_TOOL,
]
