import pytest
import requests
from datetime import date
from unittest.mock import MagicMock, patch

from app.core.config import Settings
from app.models.availability_models import AvailabilityQuery
from app.services.opendental_client import OpenDentalClient, OpenDentalError, as_record_list

BASE = "https://od.example.com/api/v1"

@pytest.fixture
def mock_request():
    with patch("app.services.opendental_client.requests.request") as mocked:
        yield mocked

def make_client():
    return OpenDentalClient(Settings(
        OPEN_DENTAL_API_URL=BASE + "/",
        OPEN_DENTAL_DEVELOPER_KEY="dev",
        OPEN_DENTAL_CUSTOMER_KEY="cust",
        OPEN_DENTAL_TIMEOUT_SECONDS=8,
    ))

def response(status_code=200, payload=None, url=BASE):
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.ok = status_code < 400
    mock_response.url = url
    mock_response.json.return_value = payload
    mock_response.text = ""
    return mock_response

def test_as_record_list():
    assert as_record_list([1]) == [1]
    assert as_record_list({"data": [2]}) == [2]
    assert as_record_list({"items": []}) == []
    assert as_record_list({"AptNum": 1}) is None
    assert as_record_list("nope") is None

@pytest.mark.asyncio
async def test_get_schedules_request_shape(mock_request):
    mock_request.return_value = response(payload=[{"SchedNum": 1}])

    records = await make_client().get_schedules("2025-01-06", "2025-01-13", provider_id=2)

    assert records == [{"SchedNum": 1}]
    args, kwargs = mock_request.call_args
    assert args == ("GET", f"{BASE}/schedules")
    assert kwargs["params"] == {"dateStart": "2025-01-06", "dateEnd": "2025-01-13", "ProvNum": 2}
    assert kwargs["headers"]["Authorization"] == "ODFHIR dev/cust"
    assert kwargs["timeout"] == 8

@pytest.mark.asyncio
async def test_http_error_carries_diagnostics(mock_request):
    mock_request.return_value = response(status_code=500, payload={"message": "bad"}, url=f"{BASE}/schedules")

    with pytest.raises(OpenDentalError) as exc_info:
        await make_client().get_schedules("2025-01-06", "2025-01-13")

    assert exc_info.value.status == 500
    assert exc_info.value.raw == {"message": "bad"}
    assert exc_info.value.url == f"{BASE}/schedules"

@pytest.mark.asyncio
async def test_transport_error_becomes_open_dental_error(mock_request):
    mock_request.side_effect = requests.Timeout("timed out")

    with pytest.raises(OpenDentalError) as exc_info:
        await make_client().get_appointments("2025-01-06", "2025-01-13")

    assert exc_info.value.status is None
    assert "timed out" in str(exc_info.value)

@pytest.mark.asyncio
async def test_unrecognisable_list_payload(mock_request):
    mock_request.return_value = response(payload={"message": "ok"})

    with pytest.raises(OpenDentalError):
        await make_client().get_schedules("2025-01-06", "2025-01-13")

@pytest.mark.asyncio
async def test_native_slots_tries_paths_in_order(mock_request):
    mock_request.side_effect = [
        response(status_code=404, payload={"message": "not found"}),
        response(payload=[{"DateTimeStart": "2025-01-06 09:00:00"}]),
    ]
    query = AvailabilityQuery(start_date=date(2025, 1, 6), end_date=date(2025, 1, 7), duration_minutes=40, provider_id=1)

    records, path, attempts = await make_client().try_native_slots(query)

    assert path == "appointments/SlotsWebSched"
    assert records == [{"DateTimeStart": "2025-01-06 09:00:00"}]
    assert [a["ok"] for a in attempts] == [False, True]
    assert attempts[0]["status"] == 404
    first_call = mock_request.call_args_list[0]
    assert first_call.args[1] == f"{BASE}/appointments/Slots"
    assert first_call.kwargs["params"] == {
        "dateStart": "2025-01-06", "dateEnd": "2025-01-07", "lengthMinutes": 40, "ProvNum": 1,
    }

@pytest.mark.asyncio
async def test_native_slots_never_raises(mock_request):
    mock_request.side_effect = requests.ConnectionError("refused")
    query = AvailabilityQuery(start_date=date(2025, 1, 6), end_date=date(2025, 1, 7))

    records, path, attempts = await make_client().try_native_slots(query)

    assert records == []
    assert path is None
    assert len(attempts) == 2

@pytest.mark.asyncio
async def test_break_appointment(mock_request):
    mock_request.return_value = response(payload=None)

    await make_client().break_appointment(55)

    args, kwargs = mock_request.call_args
    assert args == ("PUT", f"{BASE}/appointments/55/Break")
    assert kwargs["json"] == {"sendToUnscheduledList": False}
