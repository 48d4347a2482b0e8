"""
Closed filter structures for the console's lists.

Each filter enumerates every key it recognises; unknown keys are rejected
rather than forwarded. Slot, session and vehicle filters are applied to the
fetched lists in memory. The billing filter is sent to the API as query
parameters.
"""
from datetime import date, datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict

from parkdesk.schema.parking_schema import Session, Slot, Vehicle
from parkdesk.utils.common import DateTimeUtils
from parkdesk.utils.enum import BillingType, SessionStatus, SlotStatus, VehicleType


def _within_dates(moment: Optional[datetime], date_from: Optional[date], date_to: Optional[date]) -> bool:
    if date_from is None and date_to is None:
        return True
    if moment is None:
        return False
    day = DateTimeUtils.to_utc(moment).date()
    if date_from is not None and day < date_from:
        return False
    if date_to is not None and day > date_to:
        return False
    return True


class SlotFilter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Optional[VehicleType] = None
    status: Optional[SlotStatus] = None
    location: Optional[str] = None

    def matches(self, slot: Slot) -> bool:
        if self.type is not None and slot.type != self.type:
            return False
        if self.status is not None and slot.status != self.status:
            return False
        if self.location and self.location.lower() not in slot.location.lower():
            return False
        return True


class SessionFilter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    vehicle_id: Optional[str] = None
    slot_id: Optional[str] = None
    staff_id: Optional[str] = None
    status: Optional[SessionStatus] = None
    billing_type: Optional[BillingType] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    is_paid: Optional[bool] = None

    def matches(self, session: Session) -> bool:
        for field in ("vehicle_id", "slot_id", "staff_id", "status", "billing_type"):
            expected = getattr(self, field)
            if expected is not None and getattr(session, field) != expected:
                return False
        if self.is_paid is not None:
            is_paid = session.billing.is_paid if session.billing else False
            if is_paid != self.is_paid:
                return False
        return _within_dates(session.entry_time, self.date_from, self.date_to)


class VehicleFilter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Optional[VehicleType] = None
    status: Optional[SessionStatus] = None
    number_plate: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    def matches(self, vehicle: Vehicle) -> bool:
        if self.type is not None and vehicle.type != self.type:
            return False
        if self.status is not None:
            is_parked = vehicle.active_session is not None
            if is_parked != (self.status == SessionStatus.ACTIVE):
                return False
        if self.number_plate and self.number_plate.strip().upper() not in vehicle.number_plate:
            return False
        return _within_dates(vehicle.created_at, self.date_from, self.date_to)


class BillingFilter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_paid: Optional[bool] = None
    vehicle_type: Optional[VehicleType] = None
    billing_type: Optional[BillingType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def to_query_params(self) -> Dict[str, str]:
        params = {}
        if self.is_paid is not None:
            params["isPaid"] = "true" if self.is_paid else "false"
        if self.vehicle_type is not None:
            params["vehicleType"] = self.vehicle_type.value
        if self.billing_type is not None:
            params["billingType"] = self.billing_type.value
        if self.start_date is not None:
            params["startDate"] = self.start_date.isoformat()
        if self.end_date is not None:
            params["endDate"] = self.end_date.isoformat()
        return params
