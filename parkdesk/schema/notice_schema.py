from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel

from parkdesk.utils.enum import NoticeLevel


class Notice(BaseModel):
    level: NoticeLevel
    message: str
    description: Optional[str] = None
    duration_ms: int
    created_at: datetime

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(milliseconds=self.duration_ms)
