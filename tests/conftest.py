import os
from datetime import datetime
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("STATUS_SCHEDULER_ENABLED", "false")

from hotel_booking.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from hotel_booking.database import Base, enable_sqlite_savepoints, get_db  # noqa: E402
from hotel_booking.main import app  # noqa: E402
from hotel_booking.models import Room, Service, User, UserRole  # noqa: E402
from hotel_booking.services.booking_engine import BookingEngine  # noqa: E402
from hotel_booking.utils.security import issue_session_token  # noqa: E402


@pytest.fixture()
def db_engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture()
def db_session(session_factory) -> Generator:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def engine(db_session) -> BookingEngine:
    return BookingEngine(db_session)


@pytest.fixture()
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(role: str = UserRole.CUSTOMER.value, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            email=kwargs.pop("email", f"guest{counter['n']}@example.com"),
            first_name=kwargs.pop("first_name", "Guest"),
            last_name=kwargs.pop("last_name", str(counter["n"])),
            role=role,
            **kwargs,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_room(db_session):
    def _make_room(number: str = "101", price=Decimal("500000"), capacity: int = 2, **kwargs) -> Room:
        room = Room(
            number=number,
            type=kwargs.pop("type", "double"),
            price=price,
            capacity=capacity,
            **kwargs,
        )
        db_session.add(room)
        db_session.commit()
        db_session.refresh(room)
        return room

    return _make_room


@pytest.fixture()
def make_service(db_session):
    def _make_service(name: str = "Breakfast", price=Decimal("100000"), **kwargs) -> Service:
        service = Service(name=name, price=price, **kwargs)
        db_session.add(service)
        db_session.commit()
        db_session.refresh(service)
        return service

    return _make_service


@pytest.fixture()
def guest(make_user) -> User:
    return make_user()


@pytest.fixture()
def room(make_room) -> Room:
    return make_room()


@pytest.fixture()
def make_booking(engine):
    """
    Create a booking and walk it to ``status`` through the engine,
    so every side effect runs as it would in production.
    """
    def _make_booking(
        user,
        room,
        check_in=datetime(2025, 6, 1),
        check_out=datetime(2025, 6, 3),
        guests: int = 2,
        status: str = "pending",
        **kwargs,
    ):
        booking = engine.create_booking(user.id, room.id, check_in, check_out, guests, **kwargs)
        if status == "pending":
            return booking
        if status == "cancelled":
            return engine.transition_status(booking.id, "cancelled")

        engine.transition_status(booking.id, "deposit_paid")
        if status == "deposit_paid":
            return engine.get_booking(booking.id)
        engine.transition_status(booking.id, "confirmed")
        if status == "confirmed":
            return engine.get_booking(booking.id)
        return engine.transition_status(booking.id, "completed")

    return _make_booking


@pytest.fixture()
def client(session_factory) -> Generator[TestClient, None, None]:
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = issue_session_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def headers_for():
    return auth_headers
