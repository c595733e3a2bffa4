import asyncio
import os

os.environ.setdefault("APP_ENV", "testing")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from core.database import build_engine, get_db, init_db
from core.dependencies import get_place_service
from services.place_service import PlaceService


class FakeGeolocator:
    """Stands in for geopy's Nominatim; records every geocode call."""

    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.calls = []

    def geocode(self, query, **kwargs):
        self.calls.append((query, kwargs))
        if self.error is not None:
            raise self.error
        return self.results


class FakeDirectory:
    def __init__(self, agents):
        self.agents = agents

    def list(self):
        return list(self.agents)


class FakePingStore:
    def __init__(self, pings, online=None):
        self.pings = pings
        self.online = online or {}
        self.calls = []

    def list_for_agent(self, agent_id, day=None):
        self.calls.append(("agent", agent_id, day))
        return [p for p in self.pings if p.agent_id == agent_id]

    def list_for_all_agents(self, day=None):
        self.calls.append(("all", day))
        return list(self.pings)

    def online_status(self, agent_ids):
        return {a: self.online[a] for a in agent_ids if a in self.online}


class GatedRunner:
    """Runner whose calls block until the test releases them, in any order."""

    def __init__(self, only=None):
        self.only = only
        self.gates = []

    async def __call__(self, func, *args, **kwargs):
        if self.only is not None and func != self.only:
            return func(*args, **kwargs)
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return func(*args, **kwargs)


async def immediate(func, *args, **kwargs):
    return func(*args, **kwargs)


def make_location(name, address, latitude, longitude, place_id):
    return SimpleNamespace(
        address=address,
        latitude=latitude,
        longitude=longitude,
        raw={"place_id": place_id, "display_name": address, "name": name,
             "class": "amenity", "type": "cafe"},
    )


@pytest.fixture
def db_session():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def geolocator():
    return FakeGeolocator(results=[
        make_location("Blue Tokai", "Blue Tokai, Indiranagar, Bengaluru", 12.9719, 77.6412, "101"),
        make_location("Blue Tokai", "Blue Tokai, Koramangala, Bengaluru", 12.9352, 77.6245, "102"),
    ])


@pytest.fixture
def client(db_session, geolocator):
    from main import app

    place_service = PlaceService(geolocator=geolocator)

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_place_service] = lambda: place_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
