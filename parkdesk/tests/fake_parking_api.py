import asyncio
from typing import Callable, Dict, List, Optional, Tuple, Union

import httpx

from parkdesk.service.parking_api import ParkingApiClient

BASE_URL = "http://parking.test/api"
ENTRY_TIME = "2024-05-01T10:00:00Z"

Route = Union[Tuple[int, object], Callable]


class FakeParkingApi:
    """
    In-memory stand-in for the parking REST API on top of httpx.MockTransport.

    Routes are keyed by (method, path relative to /api/). A route is either a
    (status, json body) pair or a callable taking the httpx.Request; the
    callable may be async to hold a response back.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Route] = {
            ("GET", "notifications"): (200, {"success": True, "data": []}),
            ("GET", "notifications/count"): (200, {"success": True, "count": 0}),
        }
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def route(self, method: str, path: str, body=None, status_code: int = 200, handler: Optional[Callable] = None):
        self.routes[(method, path)] = handler if handler is not None else (status_code, body)

    def client(self) -> ParkingApiClient:
        return ParkingApiClient(BASE_URL, transport=self.transport)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.method == method and _path(request) == path]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, _path(request)))
        if route is None:
            return httpx.Response(404, json={"error": f"No route for {request.method} {_path(request)}"})
        if callable(route):
            response = route(request)
            if asyncio.iscoroutine(response):
                response = await response
            return response
        status_code, body = route
        return httpx.Response(status_code, json=body)


def _path(request: httpx.Request) -> str:
    return request.url.path[len("/api/"):]


def wrapped(data) -> dict:
    return {"success": True, "data": data}


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def poll():
        while not predicate():
            await asyncio.sleep(0.001)
    await asyncio.wait_for(poll(), timeout)


def vehicle_json(plate: str, vehicle_type: str = "CAR", vehicle_id: Optional[str] = None) -> dict:
    return {"id": vehicle_id or f"v-{plate}", "numberPlate": plate, "type": vehicle_type}


def session_json(session_id: str, plate: str, slot_id: str = "A1", vehicle_type: str = "CAR",
                 entry_time: str = ENTRY_TIME, status: str = "ACTIVE", staff_id: str = "st1",
                 billing_type: str = "HOURLY") -> dict:
    return {
        "id": session_id,
        "vehicleId": f"v-{plate}",
        "slotId": slot_id,
        "staffId": staff_id,
        "entryTime": entry_time,
        "exitTime": None if status == "ACTIVE" else "2024-05-01T12:00:00Z",
        "status": status,
        "billingType": billing_type,
        "vehicle": vehicle_json(plate, vehicle_type),
        "slot": {"id": slot_id, "location": slot_id, "type": vehicle_type, "status": "OCCUPIED"},
    }


def slot_json(slot_id: str, slot_type: str = "CAR", status: str = "AVAILABLE",
              parked_plate: Optional[str] = None) -> dict:
    sessions = []
    if parked_plate:
        sessions.append({
            "id": f"s-{slot_id}",
            "vehicleId": f"v-{parked_plate}",
            "slotId": slot_id,
            "staffId": "st1",
            "entryTime": ENTRY_TIME,
            "status": "ACTIVE",
            "billingType": "HOURLY",
            "vehicle": vehicle_json(parked_plate, slot_type),
        })
    return {"id": slot_id, "location": slot_id, "type": slot_type, "status": status, "sessions": sessions}


def search_result_json(plate: str, is_active: bool = True, vehicle_type: str = "CAR") -> dict:
    return {
        "id": f"v-{plate}",
        "numberPlate": plate,
        "type": vehicle_type,
        "isActive": is_active,
        "totalSessions": 3,
    }


def preview_json(session_id: str, amount: float, entry_time: str = ENTRY_TIME,
                 current_time: str = "2024-05-01T12:15:00Z", billing_type: str = "HOURLY") -> dict:
    return {
        "sessionId": session_id,
        "preview": {"amount": amount, "durationHours": 2.25, "vehicleType": "CAR", "billingType": billing_type},
        "currentTime": current_time,
        "entryTime": entry_time,
    }


def alert_json(session_id: str, plate: str, hours: float, notified_at: Optional[str] = None,
               is_notified: bool = True, slot_location: str = "A1") -> dict:
    return {
        "sessionId": session_id,
        "vehicleNumberPlate": plate,
        "slotLocation": slot_location,
        "entryTime": ENTRY_TIME,
        "currentDurationHours": hours,
        "staffName": "Ravi",
        "vehicleType": "CAR",
        "isNotified": is_notified,
        "notifiedAt": notified_at,
    }
