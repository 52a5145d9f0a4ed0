import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from app.core.config import Settings
from app.core.logger import logger
from app.models.availability_models import AvailabilityQuery

# Tried in order; the first one returning readable slots wins
NATIVE_SLOT_PATHS: Tuple[str, ...] = ("appointments/Slots", "appointments/SlotsWebSched")
LIST_WRAPPER_KEYS = ("data", "items", "results", "Slots", "slots")


class OpenDentalError(Exception):
    """Transport, HTTP or payload-shape failure talking to Open Dental."""

    def __init__(self, message: str, status: Optional[int] = None, url: str = "", raw: Any = None):
        super().__init__(message)
        self.status = status
        self.url = url
        self.raw = raw

    def to_dict(self) -> Dict[str, Any]:
        return {"error": str(self), "status": self.status, "url": self.url, "raw": self.raw}


def as_record_list(data: Any) -> Optional[List[Any]]:
    """A list payload, possibly wrapped in a single envelope key; None if unrecognisable."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in LIST_WRAPPER_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    return None


class OpenDentalClient:
    """
    Thin wrapper around the Open Dental REST API.
    Calls are blocking `requests` calls pushed to a worker thread so the
    webhook handlers stay async.
    """

    def __init__(self, settings: Settings):
        self.base_url = settings.OPEN_DENTAL_API_URL.rstrip("/")
        self.developer_key = settings.OPEN_DENTAL_DEVELOPER_KEY
        self.customer_key = settings.OPEN_DENTAL_CUSTOMER_KEY
        self.timeout = settings.OPEN_DENTAL_TIMEOUT_SECONDS

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"ODFHIR {self.developer_key}/{self.customer_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None, json: Any = None) -> Any:
        url = self.url_for(path)
        try:
            response = requests.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"❌ Open Dental {method} {path} failed: {e}")
            raise OpenDentalError(f"Request to Open Dental failed: {e}", url=url) from e

        logger.info(f"🦷 Open Dental {method} {path} -> {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            data = response.text or None

        if not response.ok:
            raise OpenDentalError(
                f"Open Dental returned HTTP {response.status_code}",
                status=response.status_code,
                url=response.url or url,
                raw=data,
            )
        return data

    async def request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None, json: Any = None) -> Any:
        return await asyncio.to_thread(self._request, method, path, params, json)

    async def get_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        data = await self.request("GET", path, params=params)
        records = as_record_list(data)
        if records is None:
            raise OpenDentalError(f"Unexpected payload from {path}", url=self.url_for(path), raw=data)
        return records

    # --- Availability capabilities ---

    @staticmethod
    def native_slot_params(query: AvailabilityQuery) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "dateStart": query.start_date.isoformat(),
            "dateEnd": query.end_date.isoformat(),
            "lengthMinutes": query.duration_minutes,
        }
        if query.provider_id:
            params["ProvNum"] = query.provider_id
        if query.operatory_id:
            params["OpNum"] = query.operatory_id
        if query.location_id:
            params["ClinicNum"] = query.location_id
        return params

    async def try_native_slots(
        self, query: AvailabilityQuery, paths: Sequence[str] = NATIVE_SLOT_PATHS
    ) -> Tuple[List[Any], Optional[str], List[Dict[str, Any]]]:
        """
        Best effort: ask each native slots endpoint in turn.
        Returns (records, winning path, attempts). Failures are recorded, never raised.
        """
        params = self.native_slot_params(query)
        attempts: List[Dict[str, Any]] = []

        for path in paths:
            try:
                records = await self.get_list(path, params=params)
            except OpenDentalError as e:
                logger.info(f"↪️ Native slots {path} unavailable: {e}")
                attempts.append({"path": path, "ok": False, "status": e.status, "error": str(e)})
                continue

            attempts.append({"path": path, "ok": True, "count": len(records)})
            if records:
                return records, path, attempts

        return [], None, attempts

    async def get_schedules(self, date_start: str, date_end: str, provider_id: Optional[int] = None) -> List[Any]:
        params: Dict[str, Any] = {"dateStart": date_start, "dateEnd": date_end}
        if provider_id:
            params["ProvNum"] = provider_id
        return await self.get_list("schedules", params=params)

    async def get_appointments(
        self, date_start: Optional[str] = None, date_end: Optional[str] = None, **filters: Any
    ) -> List[Any]:
        params: Dict[str, Any] = {k: v for k, v in filters.items() if v is not None}
        if date_start:
            params["dateStart"] = date_start
        if date_end:
            params["dateEnd"] = date_end
        return await self.get_list("appointments", params=params or None)

    # --- Patients & appointment writes ---

    async def search_patients(self, **filters: Any) -> List[Any]:
        params = {k: v for k, v in filters.items() if v}
        return await self.get_list("patients/Simple", params=params)

    async def create_appointment(self, payload: Dict[str, Any]) -> Any:
        return await self.request("POST", "appointments", json=payload)

    async def update_appointment(self, apt_num: int, payload: Dict[str, Any]) -> Any:
        return await self.request("PUT", f"appointments/{apt_num}", json=payload)

    async def break_appointment(self, apt_num: int, send_to_unscheduled_list: bool = False) -> Any:
        return await self.request(
            "PUT",
            f"appointments/{apt_num}/Break",
            json={"sendToUnscheduledList": send_to_unscheduled_list},
        )
