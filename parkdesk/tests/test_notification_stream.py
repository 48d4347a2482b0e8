import asyncio
import json
import unittest
from datetime import datetime

import httpx
import pytz

from parkdesk.service.notice_board import NoticeBoard
from parkdesk.service.notification_stream import NotificationStreamClient
from parkdesk.tests.fake_parking_api import FakeParkingApi, alert_json, wrapped
from parkdesk.utils.enum import AlertSeverity, NoticeLevel

NOW = datetime(2024, 5, 1, 23, 0, tzinfo=pytz.UTC)
TWO_MINUTES_AGO = "2024-05-01T22:58:00Z"
TEN_MINUTES_AGO = "2024-05-01T22:50:00Z"


def stream_message(event_type, alerts, count=None):
    return json.dumps({
        "type": event_type,
        "alerts": alerts,
        "count": len(alerts) if count is None else count,
        "timestamp": "2024-05-01T23:00:00Z",
    })


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class NotificationStreamTestCase(unittest.TestCase):

    def setUp(self):
        self.fake = FakeParkingApi()
        self.notices = NoticeBoard(clock=lambda: NOW)
        self.sleep = RecordingSleep()

    def make_client(self, **kwargs):
        kwargs.setdefault("stream_enabled", False)
        return NotificationStreamClient(self.fake.client(), self.notices, clock=lambda: NOW,
                                        sleep=self.sleep, **kwargs)


class TestHandleMessage(NotificationStreamTestCase):

    def test_initial_snapshot_replaces_list_without_notices(self):
        client = self.make_client()
        raised = client.handle_message(stream_message("initial", [
            alert_json("s1", "KA01", 13, TWO_MINUTES_AGO),
        ]))

        self.assertEqual(raised, [])
        self.assertEqual([alert.session_id for alert in client.alerts], ["s1"])
        self.assertEqual(client.count, 1)
        self.assertEqual(self.notices.notices, [])

    def test_fresh_update_raises_tiered_notices(self):
        client = self.make_client()
        raised = client.handle_message(stream_message("update", [
            alert_json("s1", "KA01", 13, TWO_MINUTES_AGO, slot_location="A1"),
            alert_json("s2", "KA02", 9, TWO_MINUTES_AGO, slot_location="B4"),
            alert_json("s3", "KA03", 4.5, TWO_MINUTES_AGO, slot_location="C2"),
        ]))

        self.assertEqual([(notice.level, notice.duration_ms) for notice in raised], [
            (NoticeLevel.ERROR, 10000),
            (NoticeLevel.WARNING, 8000),
            (NoticeLevel.WARNING, 6000),
        ])
        self.assertEqual(raised[0].message, "Vehicle KA01 has been parked for 13.0 hr")
        self.assertEqual(raised[0].description, "Slot: A1")

    def test_update_outside_freshness_window_is_silent(self):
        client = self.make_client()
        raised = client.handle_message(stream_message("update", [
            alert_json("s1", "KA01", 13, TEN_MINUTES_AGO),
        ]))

        self.assertEqual(raised, [])
        self.assertEqual([alert.session_id for alert in client.unread()], ["s1"])
        self.assertEqual(client.count, 1)

    def test_read_alert_is_silent(self):
        client = self.make_client()
        raised = client.handle_message(stream_message("update", [
            alert_json("s1", "KA01", 13, TWO_MINUTES_AGO, is_notified=False),
        ], count=0))
        self.assertEqual(raised, [])

    def test_malformed_message_is_ignored(self):
        client = self.make_client()
        client.handle_message(stream_message("initial", [alert_json("s1", "KA01", 3)]))

        self.assertEqual(client.handle_message("not json"), [])
        self.assertEqual(client.handle_message(json.dumps({"type": "heartbeat"})), [])
        self.assertEqual(client.count, 1)

    def test_by_severity(self):
        client = self.make_client()
        client.handle_message(stream_message("initial", [
            alert_json("s1", "KA01", 13),
            alert_json("s2", "KA02", 9),
        ]))
        self.assertEqual([alert.session_id for alert in client.by_severity(AlertSeverity.DANGER)], ["s2"])


class TestMarkAsRead(NotificationStreamTestCase):

    def test_marking_twice_keeps_count(self):
        self.fake.route("PATCH", "notifications/s1/read", {"success": True})
        client = self.make_client()
        client.handle_message(stream_message("initial", [
            alert_json("s1", "KA01", 13, TWO_MINUTES_AGO),
            alert_json("s2", "KA02", 9, TWO_MINUTES_AGO),
        ]))

        async def scenario():
            self.assertTrue(await client.mark_as_read("s1"))
            self.assertTrue(await client.mark_as_read("s1"))

        asyncio.run(scenario())
        self.assertEqual(client.count, 1)
        self.assertEqual(len(self.fake.calls("PATCH", "notifications/s1/read")), 1)
        self.assertNotIn(NoticeLevel.ERROR, [notice.level for notice in self.notices.notices])

    def test_mark_all_partial_failure_refetches(self):
        self.fake.route("PATCH", "notifications/s1/read", {"success": True})
        self.fake.route("PATCH", "notifications/s2/read", {"error": "boom"}, status_code=500)
        self.fake.route("GET", "notifications", wrapped([alert_json("s2", "KA02", 9, TWO_MINUTES_AGO)]))
        self.fake.route("GET", "notifications/count", {"success": True, "count": 1})
        client = self.make_client()
        client.handle_message(stream_message("initial", [
            alert_json("s1", "KA01", 13, TWO_MINUTES_AGO),
            alert_json("s2", "KA02", 9, TWO_MINUTES_AGO),
        ]))

        self.assertFalse(asyncio.run(client.mark_all_as_read()))
        self.assertEqual([alert.session_id for alert in client.alerts], ["s2"])
        self.assertEqual(client.count, 1)
        self.assertEqual(self.notices.notices[-1].message, "Failed to mark all notifications as read")

    def test_mark_all_success(self):
        self.fake.route("PATCH", "notifications/s1/read", {"success": True})
        self.fake.route("PATCH", "notifications/s2/read", {"success": True})
        client = self.make_client()
        client.handle_message(stream_message("initial", [
            alert_json("s1", "KA01", 13, TWO_MINUTES_AGO),
            alert_json("s2", "KA02", 9, TWO_MINUTES_AGO),
        ]))

        self.assertTrue(asyncio.run(client.mark_all_as_read()))
        self.assertEqual(client.unread(), [])
        self.assertEqual(client.count, 0)
        self.assertEqual(self.fake.calls("GET", "notifications"), [])


class TestStreamLifecycle(NotificationStreamTestCase):

    def test_failed_stream_reconnects_after_fixed_delay(self):
        self.fake.route("GET", "notifications/stream", {"error": "unavailable"}, status_code=503)
        client = self.make_client(max_attempts=2)

        async def scenario():
            client.start()
            await client._task

        asyncio.run(scenario())
        self.assertEqual(self.sleep.delays, [5.0, 5.0])
        self.assertEqual(len(self.fake.calls("GET", "notifications/stream")), 3)
        self.assertFalse(client.is_connected)

    def test_stream_events_are_applied(self):
        body = "".join(f"data: {message}\n\n" for message in (
            stream_message("initial", [alert_json("s1", "KA01", 13, TWO_MINUTES_AGO)]),
            stream_message("update", [alert_json("s1", "KA01", 13, TWO_MINUTES_AGO),
                                      alert_json("s2", "KA02", 12.5, TWO_MINUTES_AGO)]),
        ))
        responses = [httpx.Response(200, text=body), httpx.Response(503, json={"error": "gone"})]
        self.fake.route("GET", "notifications/stream", handler=lambda request: responses.pop(0))
        client = self.make_client(max_attempts=1)

        async def scenario():
            client.start()
            await client._task

        asyncio.run(scenario())
        self.assertEqual(client.count, 2)
        self.assertEqual(len(self.notices.notices), 2)
        self.assertEqual(self.sleep.delays, [5.0])

    def test_context_manager_loads_and_releases_the_stream(self):
        self.fake.route("GET", "notifications", wrapped([alert_json("s1", "KA01", 9, TEN_MINUTES_AGO)]))
        self.fake.route("GET", "notifications/count", {"success": True, "count": 1})
        opened = asyncio.Event()

        async def hold_open(request):
            opened.set()
            await asyncio.Event().wait()

        self.fake.route("GET", "notifications/stream", handler=hold_open)

        async def scenario():
            async with self.make_client(stream_enabled=True) as client:
                self.assertEqual(client.count, 1)
                await opened.wait()
                self.assertTrue(client.is_running)
            return client

        client = asyncio.run(scenario())
        self.assertFalse(client.is_running)
        self.assertFalse(client.is_connected)
        self.assertEqual(self.sleep.delays, [])
