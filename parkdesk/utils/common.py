import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

import pytz
from dateutil import parser

from parkdesk.config import settings
from parkdesk.utils.enum import AlertSeverity

logger = logging.getLogger(__name__)


class DateTimeUtils:

    @staticmethod
    def now() -> datetime:
        return datetime.now(pytz.UTC)

    @staticmethod
    def to_utc(value: Union[str, datetime, None]) -> Optional[datetime]:
        """
        Parse an API timestamp and normalise it to an aware UTC datetime.
        Naive values are taken to be UTC already.
        """
        if value is None or value == "":
            return None

        if isinstance(value, str):
            value = parser.isoparse(value)

        if value.tzinfo is None:
            return pytz.UTC.localize(value)
        return value.astimezone(pytz.UTC)

    @staticmethod
    def elapsed(start: Union[str, datetime], end: Union[str, datetime]) -> timedelta:
        return DateTimeUtils.to_utc(end) - DateTimeUtils.to_utc(start)

    @staticmethod
    def is_within(value: Union[str, datetime, None], window: timedelta, now: Optional[datetime] = None) -> bool:
        moment = DateTimeUtils.to_utc(value)
        if moment is None:
            return False
        now = now or DateTimeUtils.now()
        return moment > now - window


def format_duration(duration: timedelta) -> str:
    """
    Elapsed time as "Xh Ym".

    Hours are left out when zero and anything under a minute reads "0m":
    90 minutes -> "1h 30m", 45 minutes -> "45m", 20 seconds -> "0m".
    """
    total_minutes = max(0, int(duration.total_seconds() // 60))
    hours, minutes = divmod(total_minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_hours(hours: float) -> str:
    """Billing-table rendering of a fractional hour count ("45 mins", "2 hrs", "2h 15m")."""
    if hours < 1:
        minutes = round(hours * 60)
        return f"{minutes} min{'s' if minutes != 1 else ''}"

    whole_hours = int(hours)
    minutes = round((hours - whole_hours) * 60)
    if minutes == 60:
        whole_hours, minutes = whole_hours + 1, 0
    if minutes == 0:
        return f"{whole_hours} hr{'s' if whole_hours != 1 else ''}"
    return f"{whole_hours}h {minutes}m"


def format_alert_duration(hours: float) -> str:
    if hours < 1:
        return f"{round(hours * 60)} min"
    if hours < 24:
        return f"{hours:.1f} hr"
    days = int(hours // 24)
    return f"{days}d {hours % 24:.1f}h"


def alert_severity(hours: float) -> AlertSeverity:
    if hours >= 12:
        return AlertSeverity.CRITICAL
    if hours >= 8:
        return AlertSeverity.DANGER
    return AlertSeverity.WARNING


def _group_indian(digits: str) -> str:
    # 1234567 -> 12,34,567
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: float, symbol: Optional[str] = None) -> str:
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    sign = "-" if amount < 0 else ""
    whole, fraction = f"{abs(amount):.2f}".split(".")
    return f"{sign}{symbol}{_group_indian(whole)}.{fraction}"


def api_response(*, message: str, status: str,
                 data: Union[List[Any], Dict[str, Any], None] = None) -> Dict[str, Any]:
    return {
        "message": message,
        "status": status,
        "data": data if data is not None else [],
    }
