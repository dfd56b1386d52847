# ===============================================================
# backend/app/monitor.py
# ===============================================================
"""
Simulated real-time mission monitoring.

Nothing here is read from a vehicle: every snapshot is recomputed from the
stored mission/drone state plus random noise drawn from the `rng` passed in.
Two reads of the same mission are not expected to agree.
"""

import logging
import random
from typing import Optional

from sqlmodel import Session, select

from .assignment import locked_transaction, settle_mission_link
from .crud import drone_summary, get_mission
from .errors import NotFoundError
from .models import Drone, Mission, MissionStatus
from .schemas import PositionUpdate

logger = logging.getLogger(__name__)

WIND_DIRECTIONS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]
MISSION_STATUSES = {status.value for status in MissionStatus}


def _eta(rng: random.Random) -> str:
    return f"{rng.randint(0, 29)}min"


def _altitude(mission: Optional[Mission], rng: random.Random) -> float:
    # slight variation around the planned altitude
    if mission is None:
        return 0
    return mission.flight_altitude + rng.uniform(-1, 1)


# ===============================================================
# 📡 MISSION SNAPSHOT
# ===============================================================

def get_mission_snapshot(session: Session, mission_id: int, rng: random.Random) -> dict:
    """Point-in-time monitoring view of a mission."""
    mission = get_mission(session, mission_id)
    drone = session.get(Drone, mission.assigned_drone_id) if mission.assigned_drone_id else None
    in_progress = mission.status == MissionStatus.IN_PROGRESS

    if in_progress and mission.flight_path:
        current_location = rng.choice(mission.flight_path)
    else:
        current_location = mission.location

    if in_progress:
        progress = rng.randint(0, 99)
    elif mission.status == MissionStatus.COMPLETED:
        progress = 100
    else:
        progress = 0

    info = drone_summary(drone)
    if info is not None:
        info.pop("battery_level")
        info.pop("id")

    return {
        "mission_id": mission.id,
        "name": mission.name,
        "status": mission.status,
        "current_location": current_location,
        "progress": progress,
        "battery_level": drone.battery_level if drone else None,
        "drone_info": info,
        "estimated_time_remaining": _eta(rng) if in_progress else "N/A",
        "telemetry": {
            "altitude": _altitude(mission, rng),
            "speed": rng.randint(5, 14),
            "heading": rng.randint(0, 359),
        },
    }


# ===============================================================
# 📍 POSITION REPORTS
# ===============================================================

def report_position(session: Session, mission_id: int, update: PositionUpdate) -> Mission:
    """
    Apply an externally reported status/position/battery update.

    A reported position is appended to the flight path unless the exact
    same coordinate pair is already on it.
    """
    with locked_transaction(session):
        mission = get_mission(session, mission_id)

        status_changed = False
        if update.status in MISSION_STATUSES and update.status != mission.status:
            mission.status = MissionStatus(update.status)
            status_changed = True

        coordinates = update.current_location.coordinates if update.current_location else None
        if coordinates is not None:
            if not any(point.get("coordinates") == coordinates for point in mission.flight_path):
                mission.flight_path = mission.flight_path + [{"type": "Point", "coordinates": coordinates}]

        session.add(mission)
        if status_changed:
            settle_mission_link(session, mission)

        if update.battery_level is not None and mission.assigned_drone_id is not None:
            drone = session.get(Drone, mission.assigned_drone_id)
            if drone is not None:
                drone.battery_level = update.battery_level
                session.add(drone)

    session.refresh(mission)
    logger.debug("Mission %s position update applied", mission.id)
    return mission


# ===============================================================
# 🛰️ DRONE TELEMETRY
# ===============================================================

def get_drone_telemetry(session: Session, drone_id: str, rng: random.Random) -> dict:
    """Simulated telemetry for a drone looked up by its human drone ID."""
    drone = session.exec(select(Drone).where(Drone.drone_id == drone_id)).first()
    if not drone:
        raise NotFoundError("Drone not found")

    active = session.exec(
        select(Mission).where(
            Mission.assigned_drone_id == drone.id,
            Mission.status == MissionStatus.IN_PROGRESS,
        )
    ).first()

    return {
        "drone_id": drone.drone_id,
        "battery_level": drone.battery_level,
        "status": drone.status,
        "altitude": _altitude(active, rng),
        "speed": rng.randint(5, 14),
        "heading": rng.randint(0, 359),
        "coordinates": drone.location.get("coordinates") if drone.location else None,
        "signal_strength": rng.randint(70, 99),
        "temperature": rng.randint(20, 34),
        "humidity": rng.randint(40, 69),
        "wind_speed": rng.randint(2, 11),
        "wind_direction": rng.choice(WIND_DIRECTIONS),
        "mission_progress": rng.randint(0, 99) if active else 0,
        "estimated_time_remaining": _eta(rng) if active else "N/A",
    }
