# ===============================================================
# backend/app/crud.py
# ===============================================================
"""
CRUD (Create, Read, Update, Delete) operations for the Drone Mission Planner.
Handles database logic for:
 - Drones (registration and status transitions)
 - Missions (lifecycle and drone assignment)
 - Dashboard statistics

Anything that touches a drone/mission link goes through assignment.py
inside a `locked_transaction`.
"""

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from datetime import datetime
from typing import Optional
import logging

from .assignment import (
    check_available, link_drone_to_mission, locked_transaction,
    reassign_mission_drone, release_mission_drone, assign_drone_to_mission,
)
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Drone, DroneStatus, Mission, MissionStatus, Report, utcnow
from .schemas import DroneCreate, DroneStatusUpdate, MissionCreate, MissionUpdate

logger = logging.getLogger(__name__)

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

# ===============================================================
# 🖼️ PRESENTATION
# ===============================================================

def drone_summary(drone: Optional[Drone]) -> Optional[dict]:
    """Short drone view embedded in mission payloads."""
    if drone is None:
        return None
    return {
        "id": drone.id,
        "drone_id": drone.drone_id,
        "model": drone.model,
        "battery_level": drone.battery_level,
        "status": drone.status,
    }


def drone_to_dict(session: Session, drone: Drone) -> dict:
    data = drone.model_dump()
    mission = session.get(Mission, drone.assigned_mission_id) if drone.assigned_mission_id else None
    data["assigned_mission"] = (
        {"id": mission.id, "name": mission.name, "status": mission.status} if mission else None
    )
    return data


def mission_to_dict(session: Session, mission: Mission) -> dict:
    data = mission.model_dump()
    drone = session.get(Drone, mission.assigned_drone_id) if mission.assigned_drone_id else None
    data["assigned_drone"] = drone_summary(drone)
    return data


# ===============================================================
# 🛩️ DRONES
# ===============================================================

def create_drone(session: Session, payload: DroneCreate) -> Drone:
    """Register a new drone. Drone IDs are unique."""
    existing = session.exec(select(Drone).where(Drone.drone_id == payload.drone_id)).first()
    if existing:
        raise ValidationError("Drone ID already exists")

    drone = Drone(**payload.model_dump())
    session.add(drone)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ValidationError("Drone ID already exists")
    session.refresh(drone)
    logger.info("Registered drone %s (%s)", drone.drone_id, drone.model)
    return drone


def list_drones(session: Session):
    """Return all drones."""
    return session.exec(select(Drone)).all()


def get_drone(session: Session, drone_pk: int) -> Drone:
    """Get a specific drone by its internal id."""
    drone = session.get(Drone, drone_pk)
    if not drone:
        raise NotFoundError("Drone not found")
    return drone


def update_drone_status(session: Session, drone_pk: int, payload: DroneStatusUpdate) -> Drone:
    """
    Change a drone's status, keeping its mission link consistent.

    Leaving In Mission reverts the drone's mission to Scheduled and clears
    both links. Entering In Mission needs `assigned_mission_id`; the mission
    is set In Progress and any other drone it held is released.
    """
    if not payload.status:
        raise ValidationError("Please provide a status")
    try:
        new_status = DroneStatus(payload.status)
    except ValueError:
        raise ValidationError("Invalid status value")

    with locked_transaction(session):
        drone = get_drone(session, drone_pk)
        if new_status == drone.status:
            return drone

        if new_status == DroneStatus.IN_MISSION:
            if payload.assigned_mission_id is None:
                raise ValidationError("Mission ID is required when setting status to In Mission")
            mission = session.get(Mission, payload.assigned_mission_id)
            if not mission:
                raise NotFoundError("Mission not found")
            if mission.assigned_drone_id not in (None, drone.id):
                release_mission_drone(session, mission)
            link_drone_to_mission(session, drone, mission, start=True)
        else:
            if drone.status == DroneStatus.IN_MISSION and drone.assigned_mission_id is not None:
                mission = session.get(Mission, drone.assigned_mission_id)
                # a mission that moved on to another drone is left alone
                if mission is not None and mission.assigned_drone_id in (None, drone.id):
                    release_mission_drone(session, mission, reschedule=True)
            drone.assigned_mission_id = None
            drone.status = new_status
            session.add(drone)

    logger.info("Drone %s is now %s", drone.drone_id, drone.status.value)
    return drone


# ===============================================================
# 🎯 MISSIONS
# ===============================================================

def create_mission(session: Session, payload: MissionCreate) -> Mission:
    """
    Create a mission, optionally attached to a drone.

    A mission created with a drone starts In Progress, the same as a
    mission that gets a drone through an update.
    """
    data = payload.model_dump(exclude={"assigned_drone_id"})

    with locked_transaction(session):
        drone = None
        if payload.assigned_drone_id is not None:
            drone = session.get(Drone, payload.assigned_drone_id)
            if not drone:
                raise NotFoundError("Drone not found")
            check_available(drone)

        mission = Mission(**data)
        session.add(mission)
        session.flush()
        if drone is not None:
            assign_drone_to_mission(session, drone, mission, start=True)

    session.refresh(mission)
    logger.info("Created mission %s '%s'", mission.id, mission.name)
    return mission


def list_missions(session: Session):
    """Return all missions."""
    return session.exec(select(Mission)).all()


def get_mission(session: Session, mission_id: int) -> Mission:
    """Get a specific mission."""
    mission = session.get(Mission, mission_id)
    if not mission:
        raise NotFoundError("Mission not found")
    return mission


def update_mission(session: Session, mission_id: int, patch: MissionUpdate) -> Mission:
    """
    Apply a partial update.

    A different `assigned_drone_id` moves the mission to that drone (the old
    one goes back to Idle); an explicit null unassigns the current drone.
    """
    changes = patch.model_dump(exclude_unset=True)

    with locked_transaction(session):
        mission = get_mission(session, mission_id)

        if "assigned_drone_id" in changes:
            new_drone_id = changes.pop("assigned_drone_id")
            if new_drone_id is None:
                if mission.assigned_drone_id is not None:
                    release_mission_drone(
                        session, mission, reschedule=mission.status == MissionStatus.IN_PROGRESS
                    )
            elif new_drone_id != mission.assigned_drone_id:
                reassign_mission_drone(session, mission, new_drone_id)

        for key, value in changes.items():
            setattr(mission, key, value)
        session.add(mission)

    session.refresh(mission)
    return mission


def delete_mission(session: Session, mission_id: int) -> None:
    """Delete a mission and its report; its drone goes back to Idle."""
    with locked_transaction(session):
        mission = get_mission(session, mission_id)
        if mission.assigned_drone_id is not None:
            release_mission_drone(session, mission)
        for report in session.exec(select(Report).where(Report.mission_id == mission.id)).all():
            session.delete(report)
        session.flush()
        session.delete(mission)
    logger.info("Deleted mission %s", mission_id)


# ===============================================================
# 📈 DASHBOARD
# ===============================================================

def _count(session: Session, *conditions) -> int:
    statement = select(func.count(Mission.id))
    for condition in conditions:
        statement = statement.where(condition)
    return session.exec(statement).one()


def get_stats(session: Session) -> dict:
    """Mission counts for today, this month, overall and per status."""
    # start times are naive UTC, so the day and month boundaries are too
    today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    first_of_month = today.replace(day=1)

    return {
        "today_missions": _count(session, Mission.start_time >= today),
        "month_missions": _count(session, Mission.start_time >= first_of_month),
        "total_missions": _count(session),
        "total_drones": session.exec(select(func.count(Drone.id))).one(),
        "completed_missions": _count(session, Mission.status == MissionStatus.COMPLETED),
        "ongoing_missions": _count(session, Mission.status == MissionStatus.IN_PROGRESS),
        "scheduled_missions": _count(session, Mission.status == MissionStatus.SCHEDULED),
        "aborted_missions": _count(session, Mission.status == MissionStatus.ABORTED),
    }


def get_recent_missions(session: Session, limit: int = 5) -> list:
    """Latest missions by start time, flattened for the dashboard table."""
    missions = session.exec(
        select(Mission).order_by(Mission.start_time.desc()).limit(limit)
    ).all()

    recent = []
    for mission in missions:
        drone = session.get(Drone, mission.assigned_drone_id) if mission.assigned_drone_id else None
        recent.append({
            "id": mission.id,
            "name": mission.name,
            "start_time": mission.start_time,
            "location": mission.location.get("address"),
            "status": mission.status,
            "flight_altitude": mission.flight_altitude,
            "sensor_type": mission.sensor_type,
            "drone_id": drone.drone_id if drone else None,
            "drone_model": drone.model if drone else None,
        })
    return recent


def get_monthly_activity(session: Session, year: Optional[int] = None) -> list:
    """Completed and aborted missions per month of `year` (default: this year)."""
    year = year or utcnow().year
    missions = session.exec(
        select(Mission).where(
            Mission.start_time >= datetime(year, 1, 1),
            Mission.start_time < datetime(year + 1, 1, 1),
        )
    ).all()

    activity = [{"month": month, "completed": 0, "aborted": 0} for month in MONTHS]
    for mission in missions:
        row = activity[mission.start_time.month - 1]
        if mission.status == MissionStatus.COMPLETED:
            row["completed"] += 1
        elif mission.status == MissionStatus.ABORTED:
            row["aborted"] += 1
    return activity
