import logging
from typing import List, Optional

import httpx

from parkdesk.config import settings
from parkdesk.schema.filter_schema import SessionFilter, VehicleFilter
from parkdesk.schema.parking_schema import Session, SessionsByVehicle, Staff, Vehicle, canonical_plate
from parkdesk.service.billing_service import BillingDesk
from parkdesk.service.checkout_service import CheckoutOrchestrator
from parkdesk.service.notice_board import NoticeBoard
from parkdesk.service.notification_stream import NotificationStreamClient
from parkdesk.service.parking_api import ParkingApiClient
from parkdesk.service.slot_assignment import SlotAssignmentOrchestrator
from parkdesk.service.vehicle_locator import VehicleLocator

logger = logging.getLogger(__name__)


class Console:
    """
    One operator console: a single REST client, a single notice board and
    one orchestrator per dashboard view.

    `async with Console() as console:` opens the notification stream and
    releases it together with the HTTP client on the way out.
    """

    def __init__(self, base_url: str = settings.PARKING_API_BASE_URL,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 notices: Optional[NoticeBoard] = None,
                 stream_enabled: bool = settings.ENABLE_NOTIFICATION_STREAM):
        self.api = ParkingApiClient(base_url, transport=transport)
        self.notices = notices or NoticeBoard()

        # the checkout page's search shows parked vehicles only
        self.locator = VehicleLocator(self.api, self.notices, include_active=True)
        self.checkout = CheckoutOrchestrator(self.api, self.notices, locator=self.locator)
        self.slots = SlotAssignmentOrchestrator(self.api, self.notices)
        self.alerts = NotificationStreamClient(self.api, self.notices, stream_enabled=stream_enabled)
        self.billing = BillingDesk(self.api, self.notices)

        self.is_open = False

    async def __aenter__(self) -> "Console":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        logger.info(f"Opening console against {self.api.base_url}")
        await self.alerts.refresh()
        if self.alerts.stream_enabled:
            self.alerts.start()
        self.is_open = True

    async def close(self) -> None:
        try:
            await self.locator.close()
            await self.alerts.close()
        finally:
            await self.api.aclose()
            self.is_open = False
            logger.info("Console closed")

    # listings are read-only pass-throughs; API errors reach the caller

    async def load_sessions(self, filters: Optional[SessionFilter] = None) -> List[Session]:
        filters = filters or SessionFilter()
        sessions = await self.api.get_sessions()
        return [session for session in sessions if filters.matches(session)]

    async def load_session(self, session_id: str) -> Session:
        return await self.api.get_session(session_id)

    async def sessions_for_vehicle(self, number_plate: str) -> SessionsByVehicle:
        return await self.api.get_sessions_by_vehicle(canonical_plate(number_plate))

    async def load_vehicles(self, filters: Optional[VehicleFilter] = None) -> List[Vehicle]:
        filters = filters or VehicleFilter()
        vehicles = await self.api.get_vehicles()
        return [vehicle for vehicle in vehicles if filters.matches(vehicle)]

    async def load_staff(self) -> List[Staff]:
        return await self.api.get_staff()

    def snapshot(self) -> dict:
        return {
            "is_open": self.is_open,
            "search": self.locator.snapshot(),
            "checkout": self.checkout.snapshot(),
            "notifications": {
                "is_connected": self.alerts.is_connected,
                "count": self.alerts.count,
            },
            "notices": [notice.model_dump(mode="json") for notice in self.notices.active()],
        }
