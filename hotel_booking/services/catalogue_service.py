"""
Catalogue Service

Rooms and the priced add-on services a booking can carry.
Services are never hard-deleted: booking lines keep pointing at them,
so removal only takes them off the active list.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import BookingEngineError, ConflictError, NotFoundError, ValidationError
from ..models.booking import Service
from ..models.room import Room, RoomStatus
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

ROOM_FIELDS = ("type", "price", "capacity", "description", "amenities")
SERVICE_FIELDS = ("name", "description", "price", "category", "is_active")
REQUIRED_FIELDS = ("name", "type", "price", "capacity", "category", "is_active")


def _check_required(changes: Dict[str, Any]):
    missing = [name for name in REQUIRED_FIELDS if name in changes and changes[name] is None]
    if missing:
        raise ValidationError("Fields cannot be cleared", {"fields": missing})


def _check_price(price) -> Decimal:
    value = Decimal(str(price))
    if value < 0:
        raise ValidationError("Price cannot be negative", {"price": str(value)})
    return value


class CatalogueService:

    def __init__(self, db: Session):
        self.db = db

    # Rooms

    def list_rooms(self, status: Optional[str] = None, room_type: Optional[str] = None) -> List[Room]:
        query = self.db.query(Room)
        if status:
            query = query.filter(Room.status == status)
        if room_type:
            query = query.filter(Room.type == room_type)
        return query.order_by(Room.number).all()

    def get_room(self, room_id: str) -> Room:
        room = self.db.get(Room, room_id)
        if room is None:
            raise NotFoundError("Room not found", {"room_id": room_id})
        return room

    def create_room(
        self,
        number: str,
        room_type: str,
        price,
        capacity: int,
        description: Optional[str] = None,
        amenities: Optional[List[str]] = None,
        status: str = RoomStatus.AVAILABLE.value,
    ) -> Room:
        """
        Add a room. New rooms may start ``available`` or under ``maintenance``;
        ``booked`` is only ever set by a booking.
        """
        number = (number or "").strip()
        if not number:
            raise ValidationError("Room number cannot be empty")
        if not isinstance(capacity, int) or capacity < 1:
            raise ValidationError("Capacity must be at least 1", {"capacity": capacity})
        if status not in (RoomStatus.AVAILABLE.value, RoomStatus.MAINTENANCE.value):
            raise ValidationError("New rooms must be available or under maintenance", {"status": status})
        value = _check_price(price)
        if value == 0:
            raise ValidationError("Nightly price must be positive", {"price": str(value)})

        room = Room(
            number=number,
            type=room_type,
            price=value,
            capacity=capacity,
            description=description,
            amenities=amenities or [],
            status=status,
        )
        self.db.add(room)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Room number already exists", {"number": number})

        self.db.refresh(room)
        logger.info(f"Room {room.number} created ({room.type}, {room.price}/night)")
        return room

    def update_room(self, room_id: str, changes: Dict[str, Any]) -> Room:
        """Edit descriptive fields and price. Status follows bookings and is not edited here."""
        unknown = set(changes) - set(ROOM_FIELDS)
        if unknown:
            raise ValidationError("Unknown room fields", {"fields": sorted(unknown)})
        _check_required(changes)

        try:
            room = self.get_room(room_id)
            if "price" in changes:
                changes["price"] = _check_price(changes["price"])
                if changes["price"] == 0:
                    raise ValidationError("Nightly price must be positive", {"price": "0"})
            if "capacity" in changes and (not isinstance(changes["capacity"], int) or changes["capacity"] < 1):
                raise ValidationError("Capacity must be at least 1", {"capacity": changes["capacity"]})

            for name, value in changes.items():
                setattr(room, name, value)
            self.db.commit()
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(room)
        return room

    # Services

    def list_services(self, include_inactive: bool = False, category: Optional[str] = None) -> List[Service]:
        query = self.db.query(Service)
        if not include_inactive:
            query = query.filter(Service.is_active == True)  # noqa: E712
        if category:
            query = query.filter(Service.category == category)
        return query.order_by(Service.category, Service.name).all()

    def get_service(self, service_id: str) -> Service:
        service = self.db.get(Service, service_id)
        if service is None:
            raise NotFoundError("Service not found", {"service_id": service_id})
        return service

    def create_service(
        self,
        name: str,
        price,
        description: Optional[str] = None,
        category: str = "general",
    ) -> Service:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Service name cannot be empty")

        service = Service(
            name=name,
            description=description,
            price=_check_price(price),
            category=category or "general",
            is_active=True,
        )
        self.db.add(service)
        self.db.commit()
        self.db.refresh(service)
        logger.info(f"Service '{service.name}' created at {service.price}")
        return service

    def update_service(self, service_id: str, changes: Dict[str, Any]) -> Service:
        """Apply a partial update. Existing booking lines keep their price snapshot."""
        unknown = set(changes) - set(SERVICE_FIELDS)
        if unknown:
            raise ValidationError("Unknown service fields", {"fields": sorted(unknown)})
        _check_required(changes)

        try:
            service = self.get_service(service_id)
            if "price" in changes:
                changes["price"] = _check_price(changes["price"])
            if "name" in changes:
                changes["name"] = (changes["name"] or "").strip()
                if not changes["name"]:
                    raise ValidationError("Service name cannot be empty")

            for name, value in changes.items():
                setattr(service, name, value)
            self.db.commit()
        except BookingEngineError:
            self.db.rollback()
            raise

        self.db.refresh(service)
        return service

    def deactivate_service(self, service_id: str) -> Service:
        """Take a service off the list; new bookings can no longer add it."""
        service = self.get_service(service_id)
        if service.is_active:
            service.is_active = False
            self.db.commit()
            self.db.refresh(service)
            logger.info(f"Service '{service.name}' deactivated")
        return service
