import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional

import httpx
from pydantic import ValidationError

from parkdesk.config import settings
from parkdesk.schema.alert_schema import DurationAlert, NotificationStreamEvent
from parkdesk.schema.notice_schema import Notice
from parkdesk.schema.parking_schema import canonical_plate
from parkdesk.service.notice_board import NoticeBoard
from parkdesk.service.parking_api import ParkingApiClient
from parkdesk.utils.common import DateTimeUtils, alert_severity, format_alert_duration
from parkdesk.utils.enum import ALERT_NOTICE_TIERS, AlertSeverity, StreamEventType
from parkdesk.utils.errors import ParkingApiError

logger = logging.getLogger(__name__)


class NotificationStreamClient:
    """
    Live duration-alert feed behind the notification bell.

    Used as an async context manager: entering loads the current alerts and
    starts the stream task, leaving cancels it and closes the connection.
    Every stream message is a full snapshot that replaces the list and the
    unread count. A lost connection is retried after a fixed delay.
    """

    def __init__(self, api: ParkingApiClient, notices: NoticeBoard,
                 reconnect_delay: float = settings.STREAM_RECONNECT_DELAY_SEC,
                 max_attempts: int = settings.STREAM_MAX_RECONNECT_ATTEMPTS,
                 freshness_window: int = settings.ALERT_FRESHNESS_WINDOW_SEC,
                 stream_enabled: bool = settings.ENABLE_NOTIFICATION_STREAM,
                 clock: Callable[[], datetime] = DateTimeUtils.now,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.api = api
        self.notices = notices
        self.reconnect_delay = reconnect_delay
        self.max_attempts = max_attempts
        self.freshness_window = timedelta(seconds=freshness_window)
        self.stream_enabled = stream_enabled
        self._clock = clock
        self._sleep = sleep

        self.alerts: List[DurationAlert] = []
        self.count = 0
        self.is_loading = False
        self.is_connected = False
        self.connection_attempts = 0
        self.reconnect_count = 0

        self._task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "NotificationStreamClient":
        await self.refresh()
        if self.stream_enabled:
            self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.is_connected = False

    async def refresh(self) -> bool:
        self.is_loading = True
        try:
            self.alerts, self.count = await asyncio.gather(
                self.api.get_notifications(),
                self.api.get_notifications_count(),
            )
            return True
        except ParkingApiError as e:
            logger.error(f"Error fetching notifications: {e.message}")
            self.notices.error("Failed to load notifications")
            return False
        finally:
            self.is_loading = False

    def handle_message(self, data: str) -> List[Notice]:
        """Apply one stream payload; returns the notices it raised."""
        try:
            event = NotificationStreamEvent.model_validate_json(data)
        except ValidationError as e:
            logger.error(f"Error parsing notification stream data: {e}")
            return []

        self.alerts = event.alerts
        self.count = event.count

        # the initial snapshot replays alerts the operator has already seen
        if event.type != StreamEventType.UPDATE:
            return []

        raised = []
        now = self._clock()
        for alert in event.alerts:
            if not alert.is_notified or not DateTimeUtils.is_within(alert.notified_at, self.freshness_window, now):
                continue
            level, duration_ms = ALERT_NOTICE_TIERS[alert_severity(alert.current_duration_hours)]
            raised.append(self.notices.push(
                level,
                f"Vehicle {alert.vehicle_number_plate} has been parked for "
                f"{format_alert_duration(alert.current_duration_hours)}",
                description=f"Slot: {alert.slot_location}",
                duration_ms=duration_ms,
            ))
        return raised

    async def mark_as_read(self, session_id: str) -> bool:
        alert = self._find(session_id)
        if alert is not None and not alert.is_notified:
            logger.debug(f"Notification for session {session_id} is already read")
            return True

        try:
            await self.api.mark_notification_read(session_id)
        except ParkingApiError as e:
            logger.error(f"Error marking notification {session_id} as read: {e.message}")
            self.notices.error("Failed to mark notification as read")
            return False

        if alert is not None:
            alert.is_notified = False
            self.count = max(0, self.count - 1)
        self.notices.success("Notification marked as read")
        return True

    async def mark_all_as_read(self) -> bool:
        unread = self.unread()
        if not unread:
            return True

        outcomes = await asyncio.gather(
            *(self.api.mark_notification_read(alert.session_id) for alert in unread),
            return_exceptions=True,
        )
        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if failures:
            for failure in failures:
                logger.error(f"Error marking notification as read: {failure}")
            self.notices.error("Failed to mark all notifications as read")
            # some requests landed; only the server knows which
            await self.refresh()
            return False

        for alert in unread:
            alert.is_notified = False
        self.count = 0
        self.notices.success("All notifications marked as read")
        return True

    async def trigger_manual_check(self) -> bool:
        try:
            alerts = await self.api.trigger_manual_check()
        except ParkingApiError as e:
            logger.error(f"Error triggering manual check: {e.message}")
            self.notices.error("Failed to trigger manual check")
            return False

        self.alerts = alerts
        self.count = len(alerts)
        self.notices.success("Manual notification check completed")
        return True

    async def alerts_for_vehicle(self, number_plate: str) -> List[DurationAlert]:
        try:
            return await self.api.get_notifications_by_vehicle(canonical_plate(number_plate))
        except ParkingApiError as e:
            logger.error(f"Error fetching notifications for {number_plate}: {e.message}")
            self.notices.error(e.message)
            return []

    def unread(self) -> List[DurationAlert]:
        return [alert for alert in self.alerts if alert.is_notified]

    def by_severity(self, severity: AlertSeverity) -> List[DurationAlert]:
        return [alert for alert in self.alerts if alert_severity(alert.current_duration_hours) == severity]

    def snapshot(self) -> dict:
        return {
            "is_connected": self.is_connected,
            "is_loading": self.is_loading,
            "count": self.count,
            "reconnect_count": self.reconnect_count,
            "alerts": [
                {**alert.model_dump(mode="json"), "severity": alert_severity(alert.current_duration_hours).value}
                for alert in self.alerts
            ],
        }

    def _find(self, session_id: str) -> Optional[DurationAlert]:
        return next((alert for alert in self.alerts if alert.session_id == session_id), None)

    async def _run(self) -> None:
        failures = 0
        while True:
            self.connection_attempts += 1
            try:
                async with self.api.alert_events() as events:
                    self.is_connected = True
                    failures = 0
                    logger.info("Connected to notification stream")
                    async for data in events:
                        self.handle_message(data)
                logger.info("Notification stream closed")
            except (ParkingApiError, httpx.HTTPError) as e:
                logger.error(f"Notification stream error: {e}")

            self.is_connected = False
            failures += 1
            if self.max_attempts and failures > self.max_attempts:
                logger.error(f"Giving up on notification stream after {self.max_attempts} reconnect attempts")
                return

            logger.info(f"Reconnecting to notification stream in {self.reconnect_delay}s")
            await self._sleep(self.reconnect_delay)
            self.reconnect_count += 1
