import unittest
from datetime import time
from unittest.mock import AsyncMock, patch

from models import Booking, SpaAppointment, User

from support import add, add_booking, count, days_from_now, make_client, reset_db, seed_inventory


def room_request(**overrides):
    data = {
        "roomNumber": "101",
        "guestName": "Maria Garcia",
        "guestEmail": "maria@example.com",
        "checkIn": days_from_now(20).isoformat(),
        "checkOut": days_from_now(22).isoformat(),
        "numGuests": 2,
    }
    data.update(overrides)
    return {"type": "room", "data": data}


class TestBookingsEndpoint(unittest.TestCase):
    def setUp(self):
        reset_db()
        self.inv = seed_inventory()
        self.client = make_client()

    def test_create_room_booking(self):
        response = self.client.post("/bookings", json=room_request())
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertTrue(body["isNewUser"])
        self.assertEqual(body["booking"]["status"], "pending")
        self.assertEqual(body["booking"]["total_price"], 200)
        self.assertEqual(body["booking"]["room"]["room_number"], "101")
        self.assertEqual(body["booking"]["user"]["name"], "Maria Garcia")
        self.assertIn("Booking ID", body["message"])
        self.assertIsNotNone(body["booking"]["created_at"])
        self.assertEqual(count(Booking), 1)
        self.assertEqual(count(User), 2)

    def test_timestamp_dates_use_the_day(self):
        response = self.client.post("/bookings", json=room_request(
            checkIn=days_from_now(20).isoformat() + "T14:00:00",
            checkOut=days_from_now(22).isoformat() + "T11:00:00"))
        self.assertEqual(response.status_code, 200)
        booking = response.json()["booking"]
        self.assertEqual(booking["check_in_date"], days_from_now(20).isoformat())
        self.assertEqual(booking["total_price"], 200)

    def test_non_object_data_is_400(self):
        for data in ("101", None, [1, 2]):
            response = self.client.post("/bookings", json={"type": "room", "data": data})
            self.assertEqual(response.status_code, 400, data)
            body = response.json()
            self.assertFalse(body["success"])
            self.assertIn("Invalid or missing fields", body["message"])
        self.assertEqual(count(Booking), 0)

    def test_existing_guest_is_reused(self):
        response = self.client.post("/bookings", json=room_request(
            guestName="Existing Guest", guestEmail=None, guestPhone="+1 555 0100"))
        body = response.json()
        self.assertFalse(body["isNewUser"])
        self.assertEqual(body["booking"]["user"]["phone"], "+1 555 0100")
        self.assertEqual(body["booking"]["user"]["email"], "guest@example.com")
        self.assertEqual(count(User), 1)

    def test_past_check_in_rejected(self):
        response = self.client.post("/bookings", json=room_request(
            checkIn=days_from_now(-2).isoformat()))
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])
        self.assertEqual(count(Booking), 0)

    def test_past_check_out_rejected(self):
        response = self.client.post("/bookings", json=room_request(
            checkIn=days_from_now(0).isoformat(), checkOut=days_from_now(-1).isoformat()))
        self.assertEqual(response.status_code, 400)

    def test_unknown_room_number_is_404_without_insert(self):
        response = self.client.post("/bookings", json=room_request(roomNumber="999"))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Room not found")
        self.assertEqual(count(Booking), 0)
        self.assertEqual(count(User), 1)

    def test_overlapping_second_booking_conflicts(self):
        first = self.client.post("/bookings", json=room_request())
        self.assertEqual(first.status_code, 200)
        second = self.client.post("/bookings", json=room_request(
            guestName="Someone Else",
            checkIn=days_from_now(21).isoformat(),
            checkOut=days_from_now(25).isoformat()))
        self.assertEqual(second.status_code, 409)
        self.assertEqual(count(Booking), 1)

    def test_cancelled_booking_frees_the_room(self):
        add_booking(self.inv["garden"], self.inv["guest"], days_from_now(20), days_from_now(22),
                    status="cancelled")
        response = self.client.post("/bookings", json=room_request())
        self.assertEqual(response.status_code, 200)

    def test_capacity_is_enforced(self):
        response = self.client.post("/bookings", json=room_request(numGuests=4))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(count(Booking), 0)

    def test_missing_guest_name(self):
        request = room_request()
        del request["data"]["guestName"]
        response = self.client.post("/bookings", json=request)
        self.assertEqual(response.status_code, 400)
        self.assertIn("guestName", response.json()["message"])

    def test_invalid_type(self):
        response = self.client.post("/bookings", json={"type": "golf", "data": {}})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Invalid booking type")

    def test_spa_appointment_and_double_booking(self):
        request = {"type": "spa", "data": {
            "serviceId": self.inv["massage"].id,
            "guestName": "Alice",
            "appointmentDate": days_from_now(3).isoformat(),
            "appointmentTime": "10:30",
        }}
        first = self.client.post("/bookings", json=request)
        self.assertEqual(first.status_code, 200)
        body = first.json()
        self.assertEqual(body["appointment"]["service"]["service_name"], "Swedish Massage")
        self.assertEqual(body["appointment"]["status"], "pending")

        request["data"]["guestName"] = "Bob"
        second = self.client.post("/bookings", json=request)
        self.assertEqual(second.status_code, 409)
        self.assertEqual(count(SpaAppointment), 1)

    def test_slot_taken_between_check_and_insert(self):
        day = days_from_now(4)
        add(SpaAppointment(service_id=self.inv["massage"].id, user_id=self.inv["guest"].id,
                           appointment_date=day, appointment_time=time(16, 0)))
        request = {"type": "spa", "data": {
            "serviceId": self.inv["massage"].id,
            "guestName": "Late Guest",
            "appointmentDate": day.isoformat(),
            "appointmentTime": "16:00",
        }}
        # The pre-insert check misses the competing row; the unique index must catch it
        with patch("reservations.find_spa_conflicts", new=AsyncMock(return_value=[])):
            response = self.client.post("/bookings", json=request)
        self.assertEqual(response.status_code, 409)
        self.assertFalse(response.json()["success"])
        self.assertEqual(count(SpaAppointment), 1)
        self.assertEqual(count(User, User.name == "Late Guest"), 0)

    def test_spa_unknown_service(self):
        response = self.client.post("/bookings", json={"type": "spa", "data": {
            "serviceId": 999,
            "guestName": "Alice",
            "appointmentDate": days_from_now(3).isoformat(),
            "appointmentTime": "10:30",
        }})
        self.assertEqual(response.status_code, 404)


class TestCheckAvailabilityEndpoint(unittest.TestCase):
    def setUp(self):
        reset_db()
        self.inv = seed_inventory()
        self.client = make_client()

    def test_available_room(self):
        response = self.client.post("/check-availability", json={"type": "room", "data": {
            "roomId": self.inv["suite"].id,
            "checkIn": days_from_now(30).isoformat(),
            "checkOut": days_from_now(32).isoformat(),
        }})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["available"])
        self.assertEqual(body["nights"], 2)
        self.assertEqual(body["totalPrice"], 500)

    def test_conflicting_room(self):
        booking = add_booking(self.inv["garden"], self.inv["guest"], days_from_now(5), days_from_now(9))
        response = self.client.post("/check-availability", json={"type": "room", "data": {
            "roomNumber": "101",
            "checkIn": days_from_now(6).isoformat(),
            "checkOut": days_from_now(7).isoformat(),
        }})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertFalse(body["available"])
        self.assertEqual(body["conflicts"][0]["id"], booking.id)

    def test_past_dates(self):
        response = self.client.post("/check-availability", json={"type": "room", "data": {
            "roomNumber": "101",
            "checkIn": days_from_now(-3).isoformat(),
            "checkOut": days_from_now(2).isoformat(),
        }})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["available"])

    def test_unknown_room(self):
        response = self.client.post("/check-availability", json={"type": "room", "data": {
            "roomNumber": "999",
            "checkIn": days_from_now(3).isoformat(),
            "checkOut": days_from_now(4).isoformat(),
        }})
        self.assertEqual(response.status_code, 404)

    def test_non_object_data_is_400(self):
        for data in ("101", None):
            response = self.client.post("/check-availability", json={"type": "room", "data": data})
            self.assertEqual(response.status_code, 400, data)
            self.assertFalse(response.json()["available"])

    def test_invalid_type(self):
        response = self.client.post("/check-availability", json={"type": "golf", "data": {}})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Invalid type")


class TestStatusAndCatalogEndpoints(unittest.TestCase):
    def setUp(self):
        reset_db()
        self.inv = seed_inventory()
        self.client = make_client()
        add_booking(self.inv["garden"], self.inv["guest"], days_from_now(5), days_from_now(8))

    def test_status_requires_room(self):
        response = self.client.get("/bookings/status")
        self.assertEqual(response.status_code, 400)

    def test_status_lists_bookings(self):
        response = self.client.get("/bookings/status", params={"roomId": self.inv["garden"].id})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["bookings"]), 1)

    def test_status_with_dates(self):
        response = self.client.get("/bookings/status", params={
            "roomNumber": "101",
            "checkIn": days_from_now(9).isoformat(),
            "checkOut": days_from_now(11).isoformat(),
        })
        body = response.json()
        self.assertTrue(body["isAvailable"])
        self.assertEqual(body["overlapping"], [])

    def test_status_unknown_room(self):
        response = self.client.get("/bookings/status", params={"roomNumber": "999"})
        self.assertEqual(response.status_code, 404)

    def test_rooms_sorted_by_price(self):
        response = self.client.get("/rooms")
        self.assertEqual([r["room_number"] for r in response.json()], ["101", "301"])

    def test_spa_services_and_activities(self):
        self.assertEqual(self.client.get("/spa-services").json()[0]["service_name"], "Swedish Massage")
        self.assertEqual(self.client.get("/activities").json()[0]["activity_name"], "Sunrise Yoga")

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
