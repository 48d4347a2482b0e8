import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional
from urllib.parse import quote

import httpx

from parkdesk.config import settings
from parkdesk.schema.alert_schema import DurationAlert
from parkdesk.schema.billing_schema import (BillingPreviewResponse, BillingRecord, BillingStatistics, PeakHourData,
                                            PricingConfig, RevenueOverTime, UnpaidBillsSummary)
from parkdesk.schema.filter_schema import BillingFilter
from parkdesk.schema.form_schema import SlotOverrideRequest, VehicleEntry
from parkdesk.schema.parking_schema import (Session, SessionsByVehicle, Slot, SlotStatistics, Staff, Vehicle,
                                            VehicleSearchResult)
from parkdesk.utils.api_helper import ApiHelper
from parkdesk.utils.enum import RevenuePeriod, SlotStatus
from parkdesk.utils.errors import ParkingApiError
from parkdesk.utils.sse import iter_sse_data

logger = logging.getLogger(__name__)


class ParkingApiClient(ApiHelper):
    """
    Async client for the parking facility REST API.

    Every method is a single request; none of them retry. Mutating calls
    return whatever the API answered and the callers re-fetch their lists.
    """

    def __init__(self, base_url: str = settings.PARKING_API_BASE_URL,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(base_url, {}, settings.REQUEST_TIMEOUT, transport=transport)

    # vehicles

    async def search_vehicles(self, query: str, limit: int = settings.SEARCH_RESULT_LIMIT,
                              include_active: bool = False) -> List[VehicleSearchResult]:
        data = await self.get(
            "vehicles/search",
            "search vehicles",
            params={"q": query, "limit": limit, "includeActive": "true" if include_active else "false"},
        )
        return self.parse_list(VehicleSearchResult, data, "search vehicles")

    async def get_vehicles(self) -> List[Vehicle]:
        data = await self.get("vehicles", "fetch vehicles")
        return self.parse_list(Vehicle, data, "fetch vehicles")

    async def create_vehicle_entry(self, entry: VehicleEntry) -> dict:
        logger.info(f"Vehicle entry for {entry.number_plate} ({entry.type.value})")
        return await self.post("vehicles/entry", "create vehicle entry", json=entry.to_api())

    # sessions

    async def get_sessions(self) -> List[Session]:
        data = await self.get("sessions", "fetch sessions")
        return self.parse_list(Session, data, "fetch sessions")

    async def get_active_sessions(self) -> List[Session]:
        data = await self.get("sessions/active", "load active sessions")
        return self.parse_list(Session, data, "load active sessions")

    async def get_session(self, session_id: str) -> Session:
        data = await self.get(f"sessions/{quote(session_id)}", "fetch session")
        return self.parse(Session, data, "fetch session")

    async def get_sessions_by_vehicle(self, number_plate: str) -> SessionsByVehicle:
        data = await self.get(f"sessions/vehicle/{quote(number_plate)}", "fetch sessions by vehicle")
        return self.parse(SessionsByVehicle, data, "fetch sessions by vehicle")

    async def end_session(self, session_id: str, use_slab_pricing: bool = False) -> dict:
        logger.info(f"Ending session {session_id} (slab pricing: {use_slab_pricing})")
        return await self.patch(
            f"sessions/{quote(session_id)}/end",
            "process checkout",
            json={"useSlabPricing": use_slab_pricing},
        )

    # slots

    async def get_slots(self) -> List[Slot]:
        data = await self.get("slots", "fetch slots")
        return self.parse_list(Slot, data, "fetch slots")

    async def get_slot_statistics(self) -> SlotStatistics:
        data = await self.get("slots/statistics", "fetch slot statistics")
        return self.parse(SlotStatistics, data, "fetch slot statistics")

    async def update_slot_status(self, slot_id: str, status: SlotStatus) -> dict:
        logger.info(f"Setting slot {slot_id} to {status.value}")
        return await self.patch(f"slots/{quote(slot_id)}/status", "update slot status",
                                json={"status": status.value})

    async def override_slot(self, slot_id: str, request: SlotOverrideRequest) -> dict:
        # both legs (move the parked vehicle, park the new one) travel in one request
        logger.info(f"Overriding slot {slot_id} with {request.number_plate}, "
                    f"moving current vehicle to {request.relocate_to_slot_id}")
        return await self.post(f"slots/{quote(slot_id)}/override", "override slot", json=request.to_api())

    # staff

    async def get_staff(self) -> List[Staff]:
        data = await self.get("staff", "fetch staff")
        return self.parse_list(Staff, data, "fetch staff")

    # billing

    async def get_billing_records(self, filters: Optional[BillingFilter] = None) -> List[BillingRecord]:
        params = filters.to_query_params() if filters else None
        data = await self.get("billing", "fetch billing records", params=params or None)
        return self.parse_list(BillingRecord, data, "fetch billing records")

    async def get_billing_by_id(self, billing_id: str) -> BillingRecord:
        data = await self.get(f"billing/{quote(billing_id)}", "fetch billing record")
        return self.parse(BillingRecord, data, "fetch billing record")

    async def get_billing_statistics(self) -> BillingStatistics:
        data = await self.get("billing/statistics", "fetch billing statistics")
        return self.parse(BillingStatistics, data, "fetch billing statistics")

    async def get_revenue_over_time(self, period: RevenuePeriod = RevenuePeriod.DAY,
                                    limit: int = 30) -> List[RevenueOverTime]:
        data = await self.get("billing/revenue-trends", "fetch revenue trends",
                              params={"period": period.value, "limit": limit})
        return self.parse_list(RevenueOverTime, data, "fetch revenue trends")

    async def get_unpaid_bills(self) -> UnpaidBillsSummary:
        data = await self.get("billing/unpaid", "fetch unpaid bills")
        return self.parse(UnpaidBillsSummary, data, "fetch unpaid bills")

    async def get_pricing_config(self) -> PricingConfig:
        data = await self.get("billing/pricing-config", "fetch pricing config")
        return self.parse(PricingConfig, data, "fetch pricing config")

    async def get_peak_hours(self, date: Optional[str] = None) -> List[PeakHourData]:
        params = {"date": date} if date else None
        data = await self.get("billing/peak-hours", "fetch peak hour analysis", params=params)
        return self.parse_list(PeakHourData, data, "fetch peak hour analysis")

    async def calculate_billing_preview(self, session_id: str, use_slab_pricing: bool = False) -> BillingPreviewResponse:
        data = await self.get(
            f"billing/preview/{quote(session_id)}",
            "calculate billing preview",
            params={"useSlabPricing": "true" if use_slab_pricing else "false"},
        )
        return self.parse(BillingPreviewResponse, data, "calculate billing preview")

    async def update_payment_status(self, billing_id: str, is_paid: bool) -> dict:
        logger.info(f"Marking billing {billing_id} as {'paid' if is_paid else 'unpaid'}")
        return await self.patch(f"billing/{quote(billing_id)}/payment", "update payment status",
                                json={"isPaid": is_paid})

    # duration alerts

    async def get_notifications(self, new_only: bool = False) -> List[DurationAlert]:
        params = {"type": "new"} if new_only else None
        data = await self.get("notifications", "fetch notifications", params=params)
        return self.parse_list(DurationAlert, data, "fetch notifications")

    async def get_notifications_count(self) -> int:
        data = await self.get("notifications/count", "fetch notifications count", unwrap=False)
        count = data.get("count") if isinstance(data, dict) else None
        try:
            return int(count or 0)
        except (TypeError, ValueError) as e:
            raise ParkingApiError("Failed to fetch notifications count: malformed response") from e

    async def get_notifications_by_vehicle(self, number_plate: str) -> List[DurationAlert]:
        data = await self.get(f"notifications/vehicle/{quote(number_plate)}", "fetch notifications by vehicle")
        return self.parse_list(DurationAlert, data, "fetch notifications by vehicle")

    async def mark_notification_read(self, session_id: str) -> None:
        await self.patch(f"notifications/{quote(session_id)}/read", "mark notification as read")

    async def trigger_manual_check(self) -> List[DurationAlert]:
        data = await self.post("notifications/check", "trigger manual check")
        return self.parse_list(DurationAlert, data, "trigger manual check")

    @asynccontextmanager
    async def alert_events(self) -> AsyncIterator[AsyncIterator[str]]:
        """Open the duration-alert stream; yields the raw `data` payload of each event."""
        async with self.stream("notifications/stream", "connect to notification stream") as response:
            yield iter_sse_data(response.aiter_lines())
