from enum import Enum


class VehicleType(str, Enum):
    CAR = "CAR"
    BIKE = "BIKE"
    EV = "EV"
    HANDICAP_ACCESSIBLE = "HANDICAP_ACCESSIBLE"


class SlotStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"


class SessionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class BillingType(str, Enum):
    HOURLY = "HOURLY"
    DAY_PASS = "DAY_PASS"


class CheckoutState(str, Enum):
    NO_SELECTION = "NO_SELECTION"
    SESSION_LOADED = "SESSION_LOADED"
    PREVIEW_READY = "PREVIEW_READY"
    CONFIRM_PENDING = "CONFIRM_PENDING"
    COMMITTING = "COMMITTING"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"


class DialogMode(str, Enum):
    ASSIGN = "ASSIGN"
    OVERRIDE = "OVERRIDE"


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    DANGER = "danger"
    CRITICAL = "critical"


class StreamEventType(str, Enum):
    INITIAL = "initial"
    UPDATE = "update"


class NavigationKey(str, Enum):
    ARROW_DOWN = "ArrowDown"
    ARROW_UP = "ArrowUp"
    ENTER = "Enter"
    ESCAPE = "Escape"


class RevenuePeriod(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# Notice tier per alert severity: (level, duration in ms)
ALERT_NOTICE_TIERS = {
    AlertSeverity.CRITICAL: (NoticeLevel.ERROR, 10000),
    AlertSeverity.DANGER: (NoticeLevel.WARNING, 8000),
    AlertSeverity.WARNING: (NoticeLevel.WARNING, 6000),
}
