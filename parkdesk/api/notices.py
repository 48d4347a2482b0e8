from fastapi import APIRouter, Depends

from parkdesk.dependencies.deps import get_console
from parkdesk.service.console import Console
from parkdesk.utils.common import api_response

notices_router = APIRouter()


@notices_router.get("/v1/notices")
async def get_notices(console: Console = Depends(get_console)):
    """Notices still inside their display window."""
    return api_response(message="Notices", status="success",
                        data=[notice.model_dump(mode="json") for notice in console.notices.active()])


@notices_router.delete("/v1/notices")
async def drain_notices(console: Console = Depends(get_console)):
    return api_response(message="Notices cleared", status="success",
                        data=[notice.model_dump(mode="json") for notice in console.notices.drain()])


@notices_router.get("/v1/console")
async def get_console_state(console: Console = Depends(get_console)):
    return api_response(message="Console state", status="success", data=console.snapshot())
