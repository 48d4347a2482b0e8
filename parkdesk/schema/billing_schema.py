from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from parkdesk.schema.common_schema import ApiModel
from parkdesk.schema.parking_schema import Session
from parkdesk.utils.enum import BillingType


class BillingPreview(ApiModel):
    amount: float
    duration_hours: float
    vehicle_type: str
    billing_type: str


class BillingPreviewResponse(ApiModel):
    session_id: Optional[str] = None
    preview: BillingPreview
    current_time: datetime
    entry_time: datetime


class BillingRecord(ApiModel):
    id: str
    session_id: str
    type: BillingType
    amount: float
    is_paid: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    session: Optional[Session] = None


class RevenueByType(ApiModel):
    billing_type: str
    revenue: float = 0
    count: int = 0


class RevenueByVehicleType(ApiModel):
    vehicle_type: str
    total_revenue: float = 0
    total_bills: int = 0
    paid_revenue: float = 0
    paid_bills: int = 0


class BillingStatistics(ApiModel):
    total_revenue: float = 0
    total_bills: int = 0
    paid_bills: int = 0
    unpaid_bills: int = 0
    revenue_by_type: List[RevenueByType] = []
    revenue_by_vehicle_type: List[RevenueByVehicleType] = []


class RevenueOverTime(ApiModel):
    period: str
    revenue: float = 0
    transactions: int = 0
    paid_revenue: float = 0
    paid_transactions: int = 0


class UnpaidBillsSummary(ApiModel):
    unpaid_bills: List[BillingRecord] = []
    total_unpaid_amount: float = 0
    count: int = 0


class SlabRate(ApiModel):
    min_hours: float
    max_hours: float
    rate: float


class PricingConfig(ApiModel):
    hourly: Dict[str, float] = Field(default_factory=dict, alias="HOURLY")
    day_pass: Dict[str, float] = Field(default_factory=dict, alias="DAY_PASS")
    slab_pricing: Dict[str, List[SlabRate]] = Field(default_factory=dict, alias="SLAB_PRICING")


class VehicleCount(ApiModel):
    vehicle_type: str
    count: int = 0


class PeakHourData(ApiModel):
    hour: int
    entries_count: int = 0
    exits_count: int = 0
    revenue: float = 0
    avg_occupancy: float = 0
    total_duration: float = 0
    vehicle_breakdown: List[VehicleCount] = []
