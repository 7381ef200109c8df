"""
Tests for the room and add-on service catalogue
"""

import pytest
from datetime import datetime
from decimal import Decimal

from hotel_booking.exceptions import ConflictError, NotFoundError, ValidationError
from hotel_booking.services.catalogue_service import CatalogueService


@pytest.fixture()
def catalogue(db_session):
    return CatalogueService(db_session)


class TestRooms:

    def test_create_room(self, catalogue):
        room = catalogue.create_room(" 201 ", "suite", Decimal("1200000"), 4, amenities=["wifi"])

        assert room.number == "201"
        assert room.type == "suite"
        assert room.status == "available"
        assert room.amenities == ["wifi"]

    def test_duplicate_number(self, catalogue, room):
        with pytest.raises(ConflictError):
            catalogue.create_room(room.number, "double", Decimal("500000"), 2)

    @pytest.mark.parametrize("kwargs", [
        {"number": ""},
        {"price": Decimal("0")},
        {"price": Decimal("-1")},
        {"capacity": 0},
        {"status": "booked"},
    ])
    def test_invalid_room(self, catalogue, kwargs):
        values = {"number": "301", "room_type": "double", "price": Decimal("500000"), "capacity": 2}
        values.update(kwargs)
        with pytest.raises(ValidationError):
            catalogue.create_room(**values)

    def test_room_under_maintenance_is_not_bookable(self, catalogue, engine, guest):
        room = catalogue.create_room("401", "double", Decimal("500000"), 2, status="maintenance")

        assert catalogue.list_rooms(status="maintenance") == [room]
        assert engine.find_available_rooms(datetime(2025, 6, 1), datetime(2025, 6, 3)) == []

    def test_list_rooms_filters(self, catalogue, make_room):
        make_room("102", type="suite")
        make_room("101")

        assert [r.number for r in catalogue.list_rooms()] == ["101", "102"]
        assert [r.number for r in catalogue.list_rooms(room_type="suite")] == ["102"]

    def test_update_room(self, catalogue, room):
        updated = catalogue.update_room(room.id, {"price": Decimal("650000"), "description": "Sea view"})

        assert updated.price == Decimal("650000")
        assert updated.description == "Sea view"
        assert updated.status == "available"

    def test_status_is_not_editable(self, catalogue, room):
        with pytest.raises(ValidationError):
            catalogue.update_room(room.id, {"status": "available"})

    def test_required_field_cannot_be_cleared(self, catalogue, room):
        with pytest.raises(ValidationError):
            catalogue.update_room(room.id, {"capacity": None})

    def test_unknown_room(self, catalogue):
        with pytest.raises(NotFoundError):
            catalogue.get_room("missing")


class TestServices:

    def test_create_and_list(self, catalogue):
        spa = catalogue.create_service("Spa", Decimal("300000"), category="wellness")
        breakfast = catalogue.create_service("Breakfast", Decimal("100000"))

        assert spa.is_active is True
        assert [s.id for s in catalogue.list_services()] == [breakfast.id, spa.id]
        assert [s.id for s in catalogue.list_services(category="wellness")] == [spa.id]

    def test_negative_price(self, catalogue):
        with pytest.raises(ValidationError):
            catalogue.create_service("Spa", Decimal("-5"))

    def test_empty_name(self, catalogue):
        with pytest.raises(ValidationError):
            catalogue.create_service("  ", Decimal("5"))

    def test_update_keeps_booked_price(self, catalogue, make_service, make_booking, guest, room):
        spa = make_service("Spa", Decimal("300000"))
        booking = make_booking(guest, room, services=[{"service_id": spa.id, "quantity": 1}])

        catalogue.update_service(spa.id, {"price": Decimal("400000")})

        assert catalogue.get_service(spa.id).price == Decimal("400000")
        assert booking.services[0].unit_price == Decimal("300000")

    def test_deactivated_service_leaves_the_list(self, catalogue, engine, make_service, guest, room):
        spa = make_service("Spa", Decimal("300000"))

        catalogue.deactivate_service(spa.id)

        assert catalogue.list_services() == []
        assert [s.id for s in catalogue.list_services(include_inactive=True)] == [spa.id]
        with pytest.raises(NotFoundError):
            engine.create_booking(
                guest.id, room.id, datetime(2025, 6, 1), datetime(2025, 6, 3), 1,
                services=[{"service_id": spa.id, "quantity": 1}]
            )

    def test_unknown_field(self, catalogue, make_service):
        spa = make_service("Spa")
        with pytest.raises(ValidationError):
            catalogue.update_service(spa.id, {"discount": 5})

    def test_unknown_service(self, catalogue):
        with pytest.raises(NotFoundError):
            catalogue.deactivate_service("missing")
