import logging
from typing import Optional

from fastapi import APIRouter, Depends

from parkdesk.dependencies.deps import console_response, get_console
from parkdesk.service.console import Console
from parkdesk.utils.enum import AlertSeverity

logger = logging.getLogger(__name__)

notifications_router = APIRouter()


@notifications_router.get("/v1/notifications")
async def get_notifications(severity: Optional[AlertSeverity] = None, unread: bool = False,
                            console: Console = Depends(get_console)):
    alerts = console.alerts
    data = alerts.snapshot()
    if severity is not None or unread:
        selected = alerts.by_severity(severity) if severity is not None else alerts.alerts
        if unread:
            selected = [alert for alert in selected if alert.is_notified]
        keep = {alert.session_id for alert in selected}
        data["alerts"] = [alert for alert in data["alerts"] if alert["session_id"] in keep]
    return console_response(console, True, "Notifications", data)


@notifications_router.get("/v1/notifications/vehicle/{number_plate}")
async def get_vehicle_notifications(number_plate: str, console: Console = Depends(get_console)):
    alerts = await console.alerts.alerts_for_vehicle(number_plate)
    return console_response(console, True, "Vehicle notifications",
                            [alert.model_dump(mode="json") for alert in alerts])


@notifications_router.post("/v1/notifications/refresh")
async def refresh(console: Console = Depends(get_console)):
    ok = await console.alerts.refresh()
    return console_response(console, ok, "Notifications refreshed", console.alerts.snapshot())


@notifications_router.patch("/v1/notifications/read")
async def mark_all_as_read(console: Console = Depends(get_console)):
    ok = await console.alerts.mark_all_as_read()
    return console_response(console, ok, "All notifications marked as read", console.alerts.snapshot())


@notifications_router.patch("/v1/notifications/{session_id}/read")
async def mark_as_read(session_id: str, console: Console = Depends(get_console)):
    ok = await console.alerts.mark_as_read(session_id)
    return console_response(console, ok, "Notification marked as read", console.alerts.snapshot())


@notifications_router.post("/v1/notifications/check")
async def trigger_manual_check(console: Console = Depends(get_console)):
    ok = await console.alerts.trigger_manual_check()
    return console_response(console, ok, "Manual notification check completed", console.alerts.snapshot())
