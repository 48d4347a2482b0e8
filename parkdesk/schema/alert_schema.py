from datetime import datetime
from typing import List, Optional

from parkdesk.schema.common_schema import ApiModel
from parkdesk.utils.enum import StreamEventType


class DurationAlert(ApiModel):
    session_id: str
    vehicle_number_plate: str
    slot_location: Optional[str] = None
    entry_time: datetime
    current_duration_hours: float
    staff_name: Optional[str] = None
    vehicle_type: Optional[str] = None
    is_notified: bool = False
    notified_at: Optional[datetime] = None


class NotificationStreamEvent(ApiModel):
    type: StreamEventType
    alerts: List[DurationAlert] = []
    count: int = 0
    timestamp: Optional[datetime] = None
