"""
HTTP API tests through FastAPI's TestClient
"""

from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from hotel_booking.main import logger as main_logger
from hotel_booking.utils.logging_config import request_id_var


@pytest.fixture()
def admin(make_user):
    return make_user(role="admin")


def booking_payload(room, check_in="2025-06-01T00:00:00", check_out="2025-06-03T00:00:00", guests=2):
    return {"room_id": room.id, "check_in": check_in, "check_out": check_out, "guests": guests}


class TestBookingsApi:

    def test_create_booking(self, client, guest, room, headers_for):
        response = client.post("/api/bookings", json=booking_payload(room), headers=headers_for(guest))

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["user_id"] == guest.id
        assert Decimal(str(data["total_price"])) == Decimal("1000000")

    def test_create_requires_token(self, client, room):
        response = client.post("/api/bookings", json=booking_payload(room))
        assert response.status_code == 401

    def test_overlap_returns_conflict(self, client, guest, room, headers_for):
        client.post("/api/bookings", json=booking_payload(room), headers=headers_for(guest))

        response = client.post(
            "/api/bookings",
            json=booking_payload(room, "2025-06-02T00:00:00", "2025-06-04T00:00:00"),
            headers=headers_for(guest)
        )

        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    def test_reversed_dates_rejected_by_schema(self, client, guest, room, headers_for):
        response = client.post(
            "/api/bookings",
            json=booking_payload(room, "2025-06-03T00:00:00", "2025-06-01T00:00:00"),
            headers=headers_for(guest)
        )
        assert response.status_code == 422

    def test_invalid_transition(self, client, guest, admin, room, headers_for):
        created = client.post("/api/bookings", json=booking_payload(room), headers=headers_for(guest)).json()

        response = client.patch(
            f"/api/bookings/{created['id']}/status",
            json={"status": "completed"},
            headers=headers_for(admin)
        )

        assert response.status_code == 409
        assert response.json()["code"] == "invalid_transition"

    def test_customer_cannot_change_status(self, client, guest, room, headers_for):
        created = client.post("/api/bookings", json=booking_payload(room), headers=headers_for(guest)).json()

        response = client.patch(
            f"/api/bookings/{created['id']}/status",
            json={"status": "cancelled"},
            headers=headers_for(guest)
        )
        assert response.status_code == 403

    def test_other_guest_cannot_read_booking(self, client, guest, make_user, room, headers_for):
        created = client.post("/api/bookings", json=booking_payload(room), headers=headers_for(guest)).json()

        response = client.get(f"/api/bookings/{created['id']}", headers=headers_for(make_user()))
        assert response.status_code == 403

    def test_deposit_then_cancel(self, client, guest, room, headers_for):
        created = client.post(
            "/api/bookings",
            json=booking_payload(room, "2030-06-01T00:00:00", "2030-06-03T00:00:00"),
            headers=headers_for(guest)
        ).json()

        paid = client.post(
            f"/api/bookings/{created['id']}/payments",
            json={"payment_method": "card", "is_deposit": True},
            headers=headers_for(guest)
        )
        assert paid.status_code == 200
        assert paid.json()["status"] == "deposit_paid"

        cancelled = client.post(f"/api/bookings/{created['id']}/cancel", headers=headers_for(guest))
        assert cancelled.status_code == 200
        body = cancelled.json()
        assert body["booking"]["status"] == "cancelled"
        assert body["refund"]["refund_percent"] == 100
        assert Decimal(str(body["refund"]["refund_amount"])) == Decimal("300000")

    def test_check_availability(self, client, guest, room, headers_for):
        client.post("/api/bookings", json=booking_payload(room), headers=headers_for(guest))

        response = client.get(
            "/api/bookings/check-availability",
            params={"room_id": room.id, "check_in": "2025-06-03T00:00:00", "check_out": "2025-06-05T00:00:00"}
        )
        assert response.status_code == 200
        assert response.json()["available"] is True

    def test_unknown_booking(self, client, guest, headers_for):
        response = client.get("/api/bookings/missing", headers=headers_for(guest))
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"


class TestLoyaltyApi:

    def test_new_member_is_bronze(self, client, guest, headers_for):
        response = client.get("/api/loyalty/me", headers=headers_for(guest))

        assert response.status_code == 200
        data = response.json()
        assert data["current_points"] == 0
        assert data["current_level"] == "Bronze"

    def test_redeem_without_points(self, client, guest, headers_for):
        response = client.post(
            "/api/loyalty/redeem",
            json={"reward_id": "free-night", "points": 500},
            headers=headers_for(guest)
        )

        assert response.status_code == 400
        assert response.json()["code"] == "insufficient_points"


class TestPromotionsApi:

    def test_create_and_validate(self, client, admin, guest, headers_for):
        created = client.post(
            "/api/promotions",
            json={
                "code": "summer10",
                "name": "Summer",
                "discount_type": "percentage",
                "discount_value": "10",
                "max_discount": "100000",
                "valid_from": "2020-01-01T00:00:00",
                "valid_to": "2099-12-31T00:00:00",
            },
            headers=headers_for(admin)
        )
        assert created.status_code == 201
        assert created.json()["code"] == "SUMMER10"

        response = client.post(
            "/api/promotions/validate",
            json={"code": "SUMMER10", "subtotal": "2000000"},
            headers=headers_for(guest)
        )
        assert response.status_code == 200
        assert Decimal(str(response.json()["discount_amount"])) == Decimal("100000")

    def test_unknown_code(self, client, guest, headers_for):
        response = client.post(
            "/api/promotions/validate",
            json={"code": "NOPE", "subtotal": "100"},
            headers=headers_for(guest)
        )
        assert response.status_code == 404


class TestRoomsApi:

    def test_rating_without_reviews(self, client, room):
        response = client.get(f"/api/rooms/{room.id}/rating")

        assert response.status_code == 200
        assert response.json()["average_rating"] == 0.0
        assert response.json()["total_reviews"] == 0

    def test_available_rooms(self, client, room):
        response = client.get(
            "/api/rooms/available",
            params={"check_in": "2025-06-01T00:00:00", "check_out": "2025-06-03T00:00:00", "guests": 2}
        )
        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [room.id]

    def test_list_and_get_rooms(self, client, room, make_room):
        make_room("102", status="maintenance")

        listed = client.get("/api/rooms")
        assert listed.status_code == 200
        assert [r["number"] for r in listed.json()] == ["101", "102"]

        available = client.get("/api/rooms", params={"status": "available"})
        assert [r["id"] for r in available.json()] == [room.id]

        fetched = client.get(f"/api/rooms/{room.id}")
        assert fetched.status_code == 200
        assert fetched.json()["number"] == "101"

    def test_unknown_room(self, client):
        response = client.get("/api/rooms/missing")
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_admin_creates_room(self, client, admin, guest, headers_for):
        payload = {"number": "501", "type": "suite", "price": "1500000", "capacity": 4}

        assert client.post("/api/rooms", json=payload, headers=headers_for(guest)).status_code == 403

        created = client.post("/api/rooms", json=payload, headers=headers_for(admin))
        assert created.status_code == 201
        assert created.json()["status"] == "available"

        duplicate = client.post("/api/rooms", json=payload, headers=headers_for(admin))
        assert duplicate.status_code == 409

    def test_admin_updates_room_price(self, client, admin, room, headers_for):
        response = client.put(f"/api/rooms/{room.id}", json={"price": "650000"}, headers=headers_for(admin))

        assert response.status_code == 200
        assert Decimal(str(response.json()["price"])) == Decimal("650000")


class TestServicesApi:

    def test_public_list_hides_inactive(self, client, make_service):
        make_service("Breakfast")
        make_service("Old shuttle", is_active=False)

        response = client.get("/api/services")

        assert response.status_code == 200
        assert [s["name"] for s in response.json()] == ["Breakfast"]

    def test_admin_lifecycle(self, client, admin, headers_for):
        created = client.post(
            "/api/services",
            json={"name": "Airport pickup", "price": "250000", "category": "transport"},
            headers=headers_for(admin)
        )
        assert created.status_code == 201
        service_id = created.json()["id"]

        updated = client.put(f"/api/services/{service_id}", json={"price": "300000"}, headers=headers_for(admin))
        assert updated.status_code == 200
        assert Decimal(str(updated.json()["price"])) == Decimal("300000")

        deleted = client.delete(f"/api/services/{service_id}", headers=headers_for(admin))
        assert deleted.status_code == 200
        assert deleted.json()["is_active"] is False

        assert client.get("/api/services").json() == []
        everything = client.get("/api/services/all", headers=headers_for(admin)).json()
        assert [s["id"] for s in everything] == [service_id]

    def test_customer_cannot_create(self, client, guest, headers_for):
        response = client.post(
            "/api/services",
            json={"name": "Spa", "price": "100"},
            headers=headers_for(guest)
        )
        assert response.status_code == 403

    def test_unknown_service(self, client, admin, headers_for):
        response = client.put("/api/services/missing", json={"price": "1"}, headers=headers_for(admin))
        assert response.status_code == 404


class TestHealthApi:

    def test_liveness(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    def test_request_log_carries_request_id(self, client):
        seen = []

        def record(method, path, status_code, duration_ms):
            seen.append((path, status_code, request_id_var.get()))

        with patch.object(main_logger, "api_request", side_effect=record):
            client.get("/health/live", headers={"X-Request-ID": "req-42"})

        assert seen == [("/health/live", 200, "req-42")]
