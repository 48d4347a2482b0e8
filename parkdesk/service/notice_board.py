import logging
from datetime import datetime
from typing import Callable, List, Optional

from parkdesk.config import settings
from parkdesk.schema.notice_schema import Notice
from parkdesk.utils.common import DateTimeUtils
from parkdesk.utils.enum import NoticeLevel

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    NoticeLevel.SUCCESS: logging.INFO,
    NoticeLevel.INFO: logging.INFO,
    NoticeLevel.WARNING: logging.WARNING,
    NoticeLevel.ERROR: logging.ERROR,
}


class NoticeBoard:
    """
    Transient operator notices, the console's equivalent of toasts.

    Notices are kept until drained or until a later push finds their
    display duration has run out.
    """

    def __init__(self, clock: Callable[[], datetime] = DateTimeUtils.now):
        self._clock = clock
        self._notices: List[Notice] = []
        self._pushed = 0

    def push(self, level: NoticeLevel, message: str, description: Optional[str] = None,
             duration_ms: Optional[int] = None) -> Notice:
        notice = Notice(
            level=level,
            message=message,
            description=description,
            duration_ms=duration_ms or settings.NOTICE_DEFAULT_DURATION_MS,
            created_at=self._clock(),
        )
        self._notices = [kept for kept in self._notices if kept.expires_at > notice.created_at]
        self._notices.append(notice)
        self._pushed += 1
        suffix = f" ({description})" if description else ""
        logger.log(LOG_LEVELS[level], f"Notice [{level.value}]: {message}{suffix}")
        return notice

    def success(self, message: str, **kwargs) -> Notice:
        return self.push(NoticeLevel.SUCCESS, message, **kwargs)

    def info(self, message: str, **kwargs) -> Notice:
        return self.push(NoticeLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> Notice:
        return self.push(NoticeLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs) -> Notice:
        return self.push(NoticeLevel.ERROR, message, **kwargs)

    @property
    def notices(self) -> List[Notice]:
        return list(self._notices)

    def mark(self) -> int:
        return self._pushed

    def since(self, mark: int) -> List[Notice]:
        """Notices pushed after `mark` that are still on the board."""
        count = min(self._pushed - mark, len(self._notices))
        return list(self._notices[-count:]) if count > 0 else []

    def active(self, now: Optional[datetime] = None) -> List[Notice]:
        now = now or self._clock()
        return [notice for notice in self._notices if notice.expires_at > now]

    def drain(self) -> List[Notice]:
        notices, self._notices = self._notices, []
        return notices
