import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("FORECAST_DATA_PATH", "does-not-exist.csv")

from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from smart_ticket.database import Base, get_db
from smart_ticket.models import Route, Schedule, User, Vehicle
from smart_ticket.auth.utils import create_access_token, get_password_hash
from smart_ticket.main import app

@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()

@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

def _make_user(db, name, email, role="user"):
    user = User(name=name, email=email, password=get_password_hash("secret123"), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

@pytest.fixture
def user(db):
    return _make_user(db, "Test User", "user@example.com")

@pytest.fixture
def other_user(db):
    return _make_user(db, "Other User", "other@example.com")

@pytest.fixture
def admin(db):
    return _make_user(db, "Admin", "admin@example.com", role="admin")

@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token({"sub": str(user.id), "role": user.role})
        return {"Authorization": f"Bearer {token}"}
    return _headers

@pytest.fixture
def route(db):
    route = Route(
        name="Test Route",
        transport_type="bus",
        start_location="Start",
        end_location="End",
        distance_km=Decimal("10"),
        base_fare=Decimal("20")
    )
    db.add(route)
    db.commit()
    db.refresh(route)
    return route

@pytest.fixture
def vehicle(db):
    vehicle = Vehicle(vehicle_code="TEST001", vehicle_type="bus", capacity=50)
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    return vehicle

@pytest.fixture
def schedule(db, route, vehicle):
    schedule = Schedule(
        route_id=route.id,
        vehicle_id=vehicle.id,
        departure_time="08:00",
        arrival_time="08:30",
        days_of_week=["monday", "tuesday", "wednesday", "thursday", "friday"]
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    return schedule

@pytest.fixture
def travel_date():
    return date.today() + timedelta(days=14)
