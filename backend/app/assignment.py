# ===============================================================
# backend/app/assignment.py
# ===============================================================
"""
Drone ↔ Mission assignment protocol.

A drone is "In Mission" if and only if its `assigned_mission_id` names a
mission whose `assigned_drone_id` names the same drone. Every function here
edits both sides of that link inside the caller's session; the caller
commits once, so the pair is persisted together or not at all.

Callers hold `assignment_lock` from the first read of either record until
the commit, which serializes all writers to drone/mission links in this
process.
"""

import logging
from contextlib import contextmanager
from threading import RLock
from typing import Iterator, Optional

from sqlmodel import Session

from .errors import ConflictError, NotFoundError
from .models import (
    AVAILABLE_DRONE_STATUSES, TERMINAL_MISSION_STATUSES,
    Drone, DroneStatus, Mission, MissionStatus,
)

logger = logging.getLogger(__name__)

assignment_lock = RLock()

DRONE_UNAVAILABLE = "Drone is unavailable for mission assignment"
NEW_DRONE_UNAVAILABLE = "New drone is unavailable for mission assignment"


def check_available(drone: Drone, message: str = DRONE_UNAVAILABLE) -> None:
    """Raise ConflictError unless the drone is Idle or Charging."""
    if drone.status not in AVAILABLE_DRONE_STATUSES:
        raise ConflictError(message)


@contextmanager
def locked_transaction(session: Session) -> Iterator[None]:
    """
    Run a block of link changes as one unit of work.

    Commits on success; on any error the session is rolled back so neither
    side of a half-made link is persisted.
    """
    with assignment_lock:
        try:
            yield
            session.commit()
        except Exception:
            session.rollback()
            raise


def _linked_to(drone: Drone, mission: Mission) -> bool:
    return drone.assigned_mission_id is not None and drone.assigned_mission_id == mission.id


# ===============================================================
# 🔗 LINK / UNLINK
# ===============================================================

def link_drone_to_mission(session: Session, drone: Drone, mission: Mission, start: bool = True) -> None:
    """
    Cross-link `drone` and `mission` without checking availability.

    The drone side is flushed first; the mission side follows in the same
    transaction. With `start`, the mission moves to In Progress.
    """
    if mission.id is None:
        session.add(mission)
        session.flush()

    drone.status = DroneStatus.IN_MISSION
    drone.assigned_mission_id = mission.id
    session.add(drone)
    session.flush()

    mission.assigned_drone_id = drone.id
    if start:
        mission.status = MissionStatus.IN_PROGRESS
    session.add(mission)
    session.flush()
    logger.info("Drone %s assigned to mission %s", drone.drone_id, mission.id)


def assign_drone_to_mission(
    session: Session,
    drone: Drone,
    mission: Mission,
    start: bool = True,
    unavailable_message: str = DRONE_UNAVAILABLE,
) -> None:
    """Link an Idle or Charging drone to `mission`; anything else is a conflict."""
    check_available(drone, unavailable_message)
    link_drone_to_mission(session, drone, mission, start=start)


def release_drone(session: Session, drone: Drone) -> None:
    """Return a drone to Idle with no mission. Safe to call twice."""
    if drone.status == DroneStatus.IDLE and drone.assigned_mission_id is None:
        return
    previous = drone.assigned_mission_id
    drone.status = DroneStatus.IDLE
    drone.assigned_mission_id = None
    session.add(drone)
    session.flush()
    logger.info("Drone %s released from mission %s", drone.drone_id, previous)


def release_mission_drone(session: Session, mission: Mission, reschedule: bool = False) -> Optional[Drone]:
    """
    Free the drone assigned to `mission` and clear the forward link.

    `reschedule` is used when the drone is pulled out of a running mission:
    the mission goes back to Scheduled instead of staying In Progress.
    Returns the released drone, if there was one.
    """
    drone = None
    if mission.assigned_drone_id is not None:
        drone = session.get(Drone, mission.assigned_drone_id)
        if drone is not None and _linked_to(drone, mission):
            release_drone(session, drone)
        else:
            # finished missions keep the id of a drone that has moved on
            if drone is not None and drone.assigned_mission_id is not None:
                logger.warning(
                    "Drone %s now flies mission %s; not releasing it for mission %s",
                    drone.drone_id, drone.assigned_mission_id, mission.id,
                )
            drone = None

    mission.assigned_drone_id = None
    if reschedule:
        mission.status = MissionStatus.SCHEDULED
    session.add(mission)
    session.flush()
    return drone


def reassign_mission_drone(session: Session, mission: Mission, new_drone_id: int) -> Drone:
    """
    Move `mission` onto a different drone.

    The new drone is validated before anything is written, so a rejected
    reassignment leaves both drones and the mission unchanged. The old drone
    goes back to Idle whatever state it was in, as long as it still points
    at this mission.
    """
    new_drone = session.get(Drone, new_drone_id)
    if new_drone is None:
        raise NotFoundError("New drone not found")
    check_available(new_drone, NEW_DRONE_UNAVAILABLE)

    if mission.assigned_drone_id is not None and mission.assigned_drone_id != new_drone.id:
        old_drone = session.get(Drone, mission.assigned_drone_id)
        if old_drone is not None and _linked_to(old_drone, mission):
            release_drone(session, old_drone)
        mission.assigned_drone_id = None

    assign_drone_to_mission(session, new_drone, mission, start=True, unavailable_message=NEW_DRONE_UNAVAILABLE)
    return new_drone


def settle_mission_link(session: Session, mission: Mission) -> None:
    """
    Bring the link back in line after the mission's own status changed.

    Terminal missions hand their drone back (the mission keeps the drone id
    for its report). A live mission whose drone no longer points back is
    re-linked when the drone is free, otherwise it loses the drone.
    """
    if mission.assigned_drone_id is None:
        return
    drone = session.get(Drone, mission.assigned_drone_id)
    if drone is None:
        mission.assigned_drone_id = None
        session.add(mission)
        return

    if mission.status in TERMINAL_MISSION_STATUSES:
        if drone.assigned_mission_id == mission.id:
            release_drone(session, drone)
        return

    if drone.assigned_mission_id == mission.id and drone.status == DroneStatus.IN_MISSION:
        return
    if drone.status in AVAILABLE_DRONE_STATUSES:
        assign_drone_to_mission(session, drone, mission, start=False)
    else:
        logger.warning("Mission %s lost drone %s (status %s)", mission.id, drone.drone_id, drone.status.value)
        mission.assigned_drone_id = None
        session.add(mission)
