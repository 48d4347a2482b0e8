import logging

from fastapi import APIRouter, Depends, HTTPException

from parkdesk.config import settings
from parkdesk.dependencies.deps import get_console
from parkdesk.service.console import Console
from parkdesk.utils.errors import ParkingApiError

logger = logging.getLogger(__name__)


health_check_routes = APIRouter()


@health_check_routes.get("/v1/health")
async def health_check(console: Console = Depends(get_console)):
    response = {
        "service": settings.SERVICE_NAME,
        "console": "open" if console.is_open else "closed",
        "notification_stream": "connected" if console.alerts.is_connected else "disconnected",
        "stream_reconnects": console.alerts.reconnect_count,
    }

    try:
        # cheapest read the parking API offers
        await console.api.get("slots/statistics", "check parking api")
    except ParkingApiError as e:
        logger.warning(f"Parking API health check failed: {e.message}")
        response.update({"parking_api": "unreachable", "message": e.message})
        raise HTTPException(status_code=500, detail=response)

    response["parking_api"] = "reachable"
    return response
