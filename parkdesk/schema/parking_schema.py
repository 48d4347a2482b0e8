from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from parkdesk.schema.common_schema import ApiModel
from parkdesk.utils.enum import BillingType, SessionStatus, SlotStatus, VehicleType


def canonical_plate(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip().upper()


class Staff(ApiModel):
    id: str
    employee_id: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None


class Billing(ApiModel):
    id: str
    session_id: Optional[str] = None
    type: Optional[BillingType] = None
    amount: float = 0
    is_paid: bool = False
    created_at: Optional[datetime] = None


class Vehicle(ApiModel):
    id: str
    number_plate: str
    type: VehicleType
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sessions: List["Session"] = []

    @field_validator("number_plate")
    @classmethod
    def canonicalize_plate(cls, value):
        return canonical_plate(value)

    @property
    def active_session(self) -> Optional["Session"]:
        return next((session for session in self.sessions if session.is_active), None)


class Slot(ApiModel):
    id: str
    location: str
    type: VehicleType
    status: SlotStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sessions: List["Session"] = []

    @property
    def active_session(self) -> Optional["Session"]:
        # occupancy comes from the sessions, never from `status`
        return next((session for session in self.sessions if session.status == SessionStatus.ACTIVE), None)

    @property
    def occupied_by(self) -> Optional[str]:
        session = self.active_session
        if session is None or session.vehicle is None:
            return None
        return session.vehicle.number_plate


class Session(ApiModel):
    id: str
    vehicle_id: Optional[str] = None
    slot_id: Optional[str] = None
    staff_id: Optional[str] = None
    entry_time: datetime
    exit_time: Optional[datetime] = None
    status: SessionStatus
    billing_type: BillingType = BillingType.HOURLY
    created_at: Optional[datetime] = None
    vehicle: Optional[Vehicle] = None
    slot: Optional[Slot] = None
    staff: Optional[Staff] = None
    billing: Optional[Billing] = None

    @property
    def is_active(self) -> bool:
        return self.exit_time is None and self.status == SessionStatus.ACTIVE

    @property
    def number_plate(self) -> Optional[str]:
        return self.vehicle.number_plate if self.vehicle else None


class SessionsByVehicle(ApiModel):
    sessions: List[Session] = []
    total_sessions: int = 0


class SlotSummary(ApiModel):
    id: Optional[str] = None
    location: str


class ActiveSessionSummary(ApiModel):
    id: str
    entry_time: datetime
    slot: Optional[SlotSummary] = None


class VehicleSearchResult(ApiModel):
    id: str
    number_plate: str
    type: VehicleType
    is_active: bool = False
    total_sessions: int = 0
    active_session: Optional[ActiveSessionSummary] = None

    @field_validator("number_plate")
    @classmethod
    def canonicalize_plate(cls, value):
        return canonical_plate(value)


class SlotStatistics(ApiModel):
    total: int = 0
    available: int = 0
    occupied: int = 0
    maintenance: int = 0
    occupancy_rate: Optional[str] = None


Vehicle.model_rebuild()
Slot.model_rebuild()
