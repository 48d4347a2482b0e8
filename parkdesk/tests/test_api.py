import unittest

from fastapi.testclient import TestClient

from parkdesk.main import app
from parkdesk.service.console import Console
from parkdesk.tests.fake_parking_api import (BASE_URL, FakeParkingApi, preview_json, search_result_json,
                                             session_json, slot_json, wrapped)

PARKED = "KA01AB1234"


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.fake = FakeParkingApi()
        self.fake.route("GET", "slots", wrapped([
            slot_json("A1", "CAR", "OCCUPIED", parked_plate=PARKED),
            slot_json("B1", "BIKE", "AVAILABLE"),
        ]))
        self.fake.route("GET", "sessions/active", wrapped([session_json("s1", PARKED)]))
        self.fake.route("GET", "billing/preview/s1", wrapped(preview_json("s1", 137.5)))
        app.state.console = Console(BASE_URL, transport=self.fake.transport, stream_enabled=False)

    def client(self):
        return TestClient(app)


class TestSlotRoutes(ApiTestCase):

    def test_list_slots_with_filter(self):
        with self.client() as client:
            response = client.get("/api/v1/slots", params={"type": "BIKE"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "success")
        self.assertEqual([slot["id"] for slot in body["data"]["slots"]], ["B1"])

    def test_unknown_filter_key_is_rejected(self):
        with self.client() as client:
            response = client.get("/api/v1/slots", params={"colour": "red"})
        self.assertEqual(response.status_code, 422)

    def test_override_without_destination_is_blocked(self):
        with self.client() as client:
            client.get("/api/v1/slots")
            opened = client.post("/api/v1/slots/A1/dialog")
            self.assertEqual(opened.json()["data"]["mode"], "OVERRIDE")

            client.patch("/api/v1/slots/A1/dialog", json={"number_plate": "MH12XY9999"})
            response = client.post("/api/v1/slots/A1/dialog/submit")

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["errors"],
                         {"relocate_to_slot_id": f"No available CAR slot to move {PARKED} to"})
        self.assertEqual(self.fake.calls("POST", "slots/A1/override"), [])

    def test_submit_without_dialog_is_a_conflict(self):
        with self.client() as client:
            response = client.post("/api/v1/slots/B1/dialog/submit")
        self.assertEqual(response.status_code, 409)

    def test_server_rejection_is_reported_upstream(self):
        self.fake.route("POST", "vehicles/entry", {"error": "Staff member not found"}, status_code=404)
        with self.client() as client:
            client.get("/api/v1/slots")
            client.post("/api/v1/slots/B1/dialog")
            client.patch("/api/v1/slots/B1/dialog", json={"number_plate": "KA05", "staff_id": "nobody"})
            response = client.post("/api/v1/slots/B1/dialog/submit")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["message"], "Staff member not found")
        self.assertEqual(response.json()["upstream_status"], 404)

    def test_field_errors_after_server_rejection_are_unprocessable(self):
        self.fake.route("POST", "vehicles/entry", {"error": "Staff member not found"}, status_code=404)
        with self.client() as client:
            client.get("/api/v1/slots")
            client.post("/api/v1/slots/B1/dialog")
            client.patch("/api/v1/slots/B1/dialog", json={"number_plate": "KA05", "staff_id": "nobody"})
            rejected = client.post("/api/v1/slots/B1/dialog/submit")
            client.patch("/api/v1/slots/B1/dialog", json={"staff_id": ""})
            response = client.post("/api/v1/slots/B1/dialog/submit")

        self.assertEqual(rejected.status_code, 502)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(set(response.json()["errors"]), {"staff_id"})
        self.assertEqual(len(self.fake.calls("POST", "vehicles/entry")), 1)



class TestCheckoutRoutes(ApiTestCase):

    def test_search_select_and_commit(self):
        self.fake.route("GET", "vehicles/search", wrapped([search_result_json(PARKED)]))
        self.fake.route("PATCH", "sessions/s1/end", wrapped({"id": "s1", "status": "COMPLETED"}))

        with self.client() as client:
            client.post("/api/v1/checkout/active-sessions/refresh")
            client.put("/api/v1/search/query", json={"query": "ka01"})
            search = client.get("/api/v1/search", params={"settle": "true"}).json()
            self.assertEqual(search["data"]["results"][0]["number_plate"], PARKED)

            selected = client.post("/api/v1/search/select", json={"index": 0}).json()
            self.assertEqual(selected["data"]["checkout"]["state"], "PREVIEW_READY")
            self.assertEqual(selected["data"]["checkout"]["billing_preview"]["duration"], "2h 15m")

            client.post("/api/v1/checkout/confirmation")
            response = client.post("/api/v1/checkout/commit")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Vehicle checked out successfully!")
        self.assertEqual(response.json()["data"]["checkout"]["state"], "COMMITTED")

    def test_commit_without_preview_is_a_conflict(self):
        with self.client() as client:
            response = client.post("/api/v1/checkout/commit")
        self.assertEqual(response.status_code, 409)

    def test_failed_lookup_reports_notice_text(self):
        with self.client() as client:
            client.post("/api/v1/checkout/active-sessions/refresh")
            response = client.post("/api/v1/checkout/lookup", json={"plate": "MH12"})

        body = response.json()
        self.assertEqual(body["status"], "failed")
        self.assertEqual(body["message"], "No active session found for this vehicle")

    def test_commit_rejection_keeps_upstream_status(self):
        self.fake.route("PATCH", "sessions/s1/end", {"error": "Session already ended"}, status_code=409)
        with self.client() as client:
            client.post("/api/v1/checkout/active-sessions/refresh")
            client.post("/api/v1/checkout/lookup", json={"plate": PARKED})
            client.post("/api/v1/checkout/confirmation")
            response = client.post("/api/v1/checkout/commit")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json(), {"message": "Session already ended", "upstream_status": 409})

    def test_refusal_reports_its_own_notice(self):
        with self.client() as client:
            client.post("/api/v1/checkout/active-sessions/refresh")
            client.post("/api/v1/checkout/lookup", json={"plate": "NOPE"})
            client.post("/api/v1/checkout/lookup", json={"plate": PARKED})
            client.post("/api/v1/checkout/confirmation")
            response = client.put("/api/v1/checkout/pricing", json={"use_slab_pricing": True})

        body = response.json()
        self.assertEqual(body["status"], "failed")
        self.assertEqual(body["message"], "Close the checkout confirmation before changing the pricing mode")



class TestListingRoutes(ApiTestCase):

    def test_upstream_failure_maps_to_bad_gateway(self):
        self.fake.route("GET", "sessions", {"message": "Database unavailable"}, status_code=503)
        with self.client() as client:
            response = client.get("/api/v1/sessions")

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["message"], "Database unavailable")

    def test_sessions_filtered_by_status(self):
        self.fake.route("GET", "sessions", wrapped([
            session_json("s1", PARKED),
            session_json("s2", "KA02", status="COMPLETED"),
        ]))
        with self.client() as client:
            response = client.get("/api/v1/sessions", params={"status": "COMPLETED"})
        self.assertEqual([session["id"] for session in response.json()["data"]], ["s2"])

    def test_notices_are_listed(self):
        with self.client() as client:
            client.post("/api/v1/checkout/lookup", json={"plate": ""})
            response = client.get("/api/v1/notices")
        self.assertEqual([notice["message"] for notice in response.json()["data"]],
                         ["Please enter a vehicle number"])
