import logging
from contextvars import ContextVar
from typing import Any, Optional

from fastapi import Request

from parkdesk.service.console import Console
from parkdesk.utils.common import api_response
from parkdesk.utils.enum import NoticeLevel

logger = logging.getLogger(__name__)

notice_mark: ContextVar[Optional[int]] = ContextVar("notice_mark", default=None)


async def get_console(request: Request) -> Console:
    console = request.app.state.console
    notice_mark.set(console.notices.mark())
    return console


def console_response(console: Console, ok: bool, message: str, data: Optional[Any] = None) -> dict:
    """
    Route envelope for an orchestrator action. A failed action reports the
    latest error notice it pushed, else its latest warning.
    """
    if not ok:
        mark = notice_mark.get()
        pushed = console.notices.since(mark) if mark is not None else []
        for level in (NoticeLevel.ERROR, NoticeLevel.WARNING):
            reasons = [notice.message for notice in pushed if notice.level == level]
            if reasons:
                message = reasons[-1]
                break
    return api_response(message=message, status="success" if ok else "failed", data=data)
