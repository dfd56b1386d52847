"""Shared fixtures: an in-memory database, a seeded RNG and an API client."""

import copy
import random

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, select

from backend.app.database import get_session, init_db, make_engine
from backend.app.main import app, get_rng
from backend.app.models import (
    TERMINAL_MISSION_STATUSES, Drone, DroneStatus, Mission,
)


MISSION = {
    "name": "Orchard survey",
    "location": {"type": "Point", "coordinates": [-122.41, 37.77], "address": "1 Orchard Rd"},
    "start_time": "2026-10-19T09:00:00",
    "recurrence_type": "Once",
    "flight_path": [
        {"type": "Point", "coordinates": [-122.41, 37.77]},
        {"type": "Point", "coordinates": [-122.42, 37.78]},
        {"type": "Point", "coordinates": [-122.43, 37.77]},
    ],
    "flight_altitude": 60,
    "pattern_type": "Grid",
    "sensor_type": "RGB",
}


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def rng():
    return random.Random(20261019)


@pytest.fixture
def client(engine, rng):
    def _session():
        with Session(engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_rng] = lambda: rng
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mission_payload():
    def _payload(**overrides):
        payload = copy.deepcopy(MISSION)
        payload.update(overrides)
        return payload
    return _payload


@pytest.fixture
def new_drone(client):
    """Register a drone over the API and return its data; optionally force a status."""
    counter = {"n": 0}

    def _new_drone(status="Idle", **overrides):
        counter["n"] += 1
        payload = {
            "drone_id": f"DR-{counter['n']:03d}",
            "model": "Skyfarer X4",
            "location": {"type": "Point", "coordinates": [-122.4, 37.7]},
        }
        payload.update(overrides)
        r = client.post("/api/drones", json=payload)
        assert r.status_code == 201, r.text
        drone = r.json()["data"]
        if status != "Idle":
            r = client.put(f"/api/drones/{drone['id']}/status", json={"status": status})
            assert r.status_code == 200, r.text
            drone = r.json()["data"]
        return drone
    return _new_drone


@pytest.fixture
def new_mission(client, mission_payload):
    def _new_mission(**overrides):
        r = client.post("/api/missions", json=mission_payload(**overrides))
        assert r.status_code == 201, r.text
        return r.json()["data"]
    return _new_mission


@pytest.fixture
def check_links(engine):
    """Assert the drone/mission link invariant over everything committed."""
    def _check():
        with Session(engine) as s:
            drones = s.exec(select(Drone)).all()
            missions = s.exec(select(Mission)).all()
            for drone in drones:
                if drone.status == DroneStatus.IN_MISSION:
                    mission = s.get(Mission, drone.assigned_mission_id)
                    assert mission is not None, f"{drone.drone_id} points at a missing mission"
                    assert mission.assigned_drone_id == drone.id
                else:
                    assert drone.assigned_mission_id is None, f"{drone.drone_id} is {drone.status} but linked"

            live = [m for m in missions
                    if m.assigned_drone_id is not None and m.status not in TERMINAL_MISSION_STATUSES]
            holders = [m.assigned_drone_id for m in live]
            assert len(holders) == len(set(holders)), "a drone is held by two live missions"
            for mission in live:
                drone = s.get(Drone, mission.assigned_drone_id)
                assert drone.assigned_mission_id == mission.id
    return _check
