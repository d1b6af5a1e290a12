import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure the application modules at the project root are importable when running tests
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, build_engine
from Location_module.Location_model import Location
from Location_module.Box_change_model import BoxChange
from Location_module.Location_crud import create_location
from Route_module.maps_client import DrivingDistance, OptimizedRoute

# Fixed reference instant so elapsed-day assertions are deterministic
NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeMapsClient:
    """In-memory stand-in for GoogleMapsClient. Reverses the stop order."""

    def __init__(self):
        self.calls = []
        self.fail_with = None

    def optimize_route(self, origin, destinations):
        self.calls.append(("optimize_route", origin, list(destinations)))
        if self.fail_with:
            raise self.fail_with
        return OptimizedRoute(
            optimized_order=list(reversed(destinations)),
            total_distance=round(2.5 * (len(destinations) + 1), 2),
            total_duration=10 * (len(destinations) + 1)
        )

    def calculate_driving_distances(self, origin, destinations):
        self.calls.append(("calculate_driving_distances", origin, list(destinations)))
        if self.fail_with:
            raise self.fail_with
        return [
            DrivingDistance(destination=destination, distance=1.5 * (index + 1), duration=5 * (index + 1))
            for index, destination in enumerate(destinations)
        ]

    def geocode(self, address):
        self.calls.append(("geocode", address))
        if self.fail_with:
            raise self.fail_with
        return 42.3314, -83.0458


@pytest.fixture
def engine():
    """
    In-memory SQLite engine shared across threads (TestClient runs sync routes in a threadpool).
    Built by the application's factory, so foreign keys are enforced as in production.
    """
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_location(db_session):
    """Factory creating a location whose last box change was `days_ago` days before NOW."""
    counter = {"n": 0}

    def _make(name=None, address=None, days_ago=0, latitude=42.3314, longitude=-83.0458, **extra):
        counter["n"] += 1
        return create_location(
            db_session,
            name=name or f"Location {counter['n']}",
            address=address or f"{100 + counter['n']} Main St, Detroit, MI",
            latitude=latitude,
            longitude=longitude,
            now=NOW - timedelta(days=days_ago),
            **extra
        )

    return _make


@pytest.fixture
def frozen_clock(monkeypatch):
    """Pin the current time used by the CRUD layer and classifier to NOW."""
    monkeypatch.setattr("Location_module.Location_crud.now_utc", lambda: NOW)
    monkeypatch.setattr("Location_module.elapsed_time.now_utc", lambda: NOW)
    return NOW


@pytest.fixture
def maps_client():
    return FakeMapsClient()


@pytest.fixture
def client(db_session, maps_client, frozen_clock):
    from main import app
    from deps import get_db, get_maps_client

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_maps_client] = lambda: maps_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def count_rows(session, model):
    return session.query(model).count()


@pytest.fixture
def counts(db_session):
    """Snapshot of (locations, box_changes) row counts."""
    return lambda: (count_rows(db_session, Location), count_rows(db_session, BoxChange))
