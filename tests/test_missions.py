"""Mission lifecycle over the API: create, update, delete and drone assignment."""

import pytest


def test_create_mission_without_drone(client, mission_payload):
    r = client.post("/api/missions", json=mission_payload())
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    mission = body["data"]
    assert mission["status"] == "Scheduled"
    assert mission["assigned_drone_id"] is None
    assert mission["recurrence_type"] == "Once"
    assert len(mission["flight_path"]) == 3
    assert mission["location"]["address"] == "1 Orchard Rd"


@pytest.mark.parametrize("field", ["name", "start_time", "flight_altitude", "pattern_type", "sensor_type"])
def test_create_mission_missing_field(client, mission_payload, field):
    payload = mission_payload()
    del payload[field]
    r = client.post("/api/missions", json=payload)
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert field in r.json()["error"]


def test_create_mission_rejects_bad_values(client, mission_payload):
    assert client.post("/api/missions", json=mission_payload(flight_path=[])).status_code == 400
    assert client.post("/api/missions", json=mission_payload(flight_altitude=0)).status_code == 400
    assert client.post("/api/missions", json=mission_payload(sensor_type="Sonar")).status_code == 400
    no_address = mission_payload()
    del no_address["location"]["address"]
    assert client.post("/api/missions", json=no_address).status_code == 400
    assert client.get("/api/missions").json()["count"] == 0


def test_create_mission_with_drone_links_both_sides(client, new_drone, mission_payload, check_links):
    drone = new_drone()
    r = client.post("/api/missions", json=mission_payload(assigned_drone_id=drone["id"]))
    assert r.status_code == 201
    mission = r.json()["data"]
    assert mission["assigned_drone_id"] == drone["id"]
    assert mission["status"] == "In Progress"

    drone = client.get(f"/api/drones/{drone['id']}").json()["data"]
    assert drone["status"] == "In Mission"
    assert drone["assigned_mission_id"] == mission["id"]
    check_links()


def test_create_mission_with_charging_drone(client, new_drone, new_mission):
    drone = new_drone(status="Charging")
    mission = new_mission(assigned_drone_id=drone["id"])
    assert mission["assigned_drone_id"] == drone["id"]


def test_create_mission_with_unknown_drone(client, mission_payload):
    r = client.post("/api/missions", json=mission_payload(assigned_drone_id=999))
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Drone not found"}
    assert client.get("/api/missions").json()["count"] == 0


@pytest.mark.parametrize("status", ["Maintenance", "In Mission"])
def test_create_mission_with_unavailable_drone(client, new_drone, new_mission, mission_payload, status, check_links):
    drone = new_drone(status="Maintenance")
    if status == "In Mission":
        client.put(f"/api/drones/{drone['id']}/status", json={"status": "Idle"})
        new_mission(assigned_drone_id=drone["id"])
    before = client.get(f"/api/drones/{drone['id']}").json()["data"]
    missions_before = client.get("/api/missions").json()["count"]

    r = client.post("/api/missions", json=mission_payload(assigned_drone_id=drone["id"]))
    assert r.status_code == 400
    assert r.json()["error"] == "Drone is unavailable for mission assignment"
    assert client.get(f"/api/drones/{drone['id']}").json()["data"] == before
    assert client.get("/api/missions").json()["count"] == missions_before
    check_links()


def test_get_mission_expands_drone(client, new_drone, new_mission):
    drone = new_drone()
    mission = new_mission(assigned_drone_id=drone["id"])
    data = client.get(f"/api/missions/{mission['id']}").json()["data"]
    assert data["assigned_drone"]["drone_id"] == drone["drone_id"]
    assert data["assigned_drone"]["status"] == "In Mission"

    listed = client.get("/api/missions").json()
    assert listed["count"] == 1
    assert listed["data"][0]["assigned_drone"]["id"] == drone["id"]


def test_get_missing_mission(client):
    r = client.get("/api/missions/42")
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Mission not found"}


def test_reassign_then_delete_scenario(client, new_drone, new_mission, check_links):
    d1 = new_drone()
    d2 = new_drone()
    m1 = new_mission(assigned_drone_id=d1["id"])
    check_links()

    r = client.put(f"/api/missions/{m1['id']}", json={"assigned_drone_id": d2["id"]})
    assert r.status_code == 200
    assert r.json()["data"]["assigned_drone_id"] == d2["id"]
    assert r.json()["data"]["status"] == "In Progress"

    d1_now = client.get(f"/api/drones/{d1['id']}").json()["data"]
    d2_now = client.get(f"/api/drones/{d2['id']}").json()["data"]
    assert d1_now["status"] == "Idle" and d1_now["assigned_mission_id"] is None
    assert d2_now["status"] == "In Mission" and d2_now["assigned_mission_id"] == m1["id"]
    check_links()

    r = client.delete(f"/api/missions/{m1['id']}")
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": {}}
    d2_now = client.get(f"/api/drones/{d2['id']}").json()["data"]
    assert d2_now["status"] == "Idle" and d2_now["assigned_mission_id"] is None
    assert client.get(f"/api/missions/{m1['id']}").status_code == 404
    check_links()


def test_reassign_releases_old_drone_from_any_state(client, new_drone, new_mission, engine):
    from sqlmodel import Session
    from backend.app.models import Drone, DroneStatus

    d1 = new_drone()
    d2 = new_drone()
    m1 = new_mission(assigned_drone_id=d1["id"])
    # the old drone was flagged for maintenance behind the API's back
    with Session(engine) as s:
        drone = s.get(Drone, d1["id"])
        drone.status = DroneStatus.MAINTENANCE
        s.add(drone)
        s.commit()

    client.put(f"/api/missions/{m1['id']}", json={"assigned_drone_id": d2["id"]})
    assert client.get(f"/api/drones/{d1['id']}").json()["data"]["status"] == "Idle"


def test_reassign_to_unavailable_drone_changes_nothing(client, new_drone, new_mission, check_links):
    d1 = new_drone()
    busy = new_drone(status="Maintenance")
    m1 = new_mission(assigned_drone_id=d1["id"])

    r = client.put(f"/api/missions/{m1['id']}", json={"assigned_drone_id": busy["id"], "name": "Renamed"})
    assert r.status_code == 400
    assert r.json()["error"] == "New drone is unavailable for mission assignment"

    mission = client.get(f"/api/missions/{m1['id']}").json()["data"]
    assert mission["assigned_drone_id"] == d1["id"]
    assert mission["name"] == "Orchard survey"
    assert client.get(f"/api/drones/{d1['id']}").json()["data"]["status"] == "In Mission"
    assert client.get(f"/api/drones/{busy['id']}").json()["data"]["status"] == "Maintenance"
    check_links()


def test_reassign_to_unknown_drone(client, new_drone, new_mission):
    d1 = new_drone()
    m1 = new_mission(assigned_drone_id=d1["id"])
    r = client.put(f"/api/missions/{m1['id']}", json={"assigned_drone_id": 999})
    assert r.status_code == 404
    assert r.json()["error"] == "New drone not found"
    assert client.get(f"/api/drones/{d1['id']}").json()["data"]["status"] == "In Mission"


def test_assign_drone_to_unassigned_mission(client, new_drone, new_mission, check_links):
    mission = new_mission()
    drone = new_drone()
    r = client.put(f"/api/missions/{mission['id']}", json={"assigned_drone_id": drone["id"]})
    assert r.json()["data"]["status"] == "In Progress"
    check_links()


def test_unassign_with_null(client, new_drone, new_mission, check_links):
    drone = new_drone()
    mission = new_mission(assigned_drone_id=drone["id"])
    r = client.put(f"/api/missions/{mission['id']}", json={"assigned_drone_id": None})
    assert r.status_code == 200
    assert r.json()["data"]["assigned_drone_id"] is None
    assert r.json()["data"]["status"] == "Scheduled"
    assert client.get(f"/api/drones/{drone['id']}").json()["data"]["status"] == "Idle"
    check_links()


def test_update_plain_fields(client, new_mission):
    mission = new_mission()
    r = client.put(f"/api/missions/{mission['id']}", json={
        "name": "North field",
        "flight_altitude": 80.5,
        "pattern_type": "Perimeter",
        "start_time": "2026-11-01T08:30:00Z",
    })
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["name"] == "North field"
    assert data["flight_altitude"] == 80.5
    assert data["pattern_type"] == "Perimeter"
    assert data["start_time"].startswith("2026-11-01T08:30:00")
    assert data["sensor_type"] == "RGB"


def test_update_validates_fields(client, new_mission):
    mission = new_mission()
    assert client.put(f"/api/missions/{mission['id']}", json={"flight_altitude": -5}).status_code == 400
    assert client.put(f"/api/missions/{mission['id']}", json={"name": None}).status_code == 400
    assert client.put(f"/api/missions/{mission['id']}", json={"flight_path": []}).status_code == 400


def test_update_missing_mission(client):
    r = client.put("/api/missions/7", json={"name": "x"})
    assert r.status_code == 404
    assert r.json()["error"] == "Mission not found"


def test_delete_missing_mission(client):
    r = client.delete("/api/missions/7")
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Mission not found"}


def test_zoned_start_time_is_stored_as_utc(client, mission_payload):
    r = client.post("/api/missions", json=mission_payload(start_time="2026-10-19T11:00:00+02:00"))
    assert r.status_code == 201, r.text
    mission = client.get(f"/api/missions/{r.json()['data']['id']}").json()["data"]
    assert mission["start_time"] == "2026-10-19T09:00:00"
    assert mission["created_at"]


def test_timestamp_columns_are_naive():
    from backend.app.models import Drone, Mission, Report

    columns = [
        Drone.__table__.c.created_at, Mission.__table__.c.start_time, Mission.__table__.c.created_at,
        Report.__table__.c.start_time, Report.__table__.c.end_time, Report.__table__.c.created_at,
    ]
    for column in columns:
        assert column.type.timezone is False, column.name
