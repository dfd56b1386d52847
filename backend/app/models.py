# ===============================================================
# backend/app/models.py
# ===============================================================
"""
Data models for the Drone Mission Planner backend.
Defines SQLModel ORM tables for:
 - Drones
 - Missions
 - Survey Reports

Locations are stored as GeoJSON-like points:
    {"type": "Point", "coordinates": [longitude, latitude]}
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from sqlalchemy import Column, DateTime, JSON
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone


# ===============================================================
# 🏷️ ENUMERATIONS
# ===============================================================

class DroneStatus(str, Enum):
    IDLE = "Idle"
    IN_MISSION = "In Mission"
    CHARGING = "Charging"
    MAINTENANCE = "Maintenance"


class MissionStatus(str, Enum):
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    ABORTED = "Aborted"


class RecurrenceType(str, Enum):
    ONCE = "Once"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class PatternType(str, Enum):
    GRID = "Grid"
    CROSSHATCH = "Crosshatch"
    PERIMETER = "Perimeter"


class SensorType(str, Enum):
    RGB = "RGB"
    THERMAL = "Thermal"
    MULTISPECTRAL = "Multispectral"
    LIDAR = "LiDAR"


class ReportStatus(str, Enum):
    COMPLETED = "Completed"
    PARTIAL = "Partial"
    FAILED = "Failed"


# Drones in these states may be given a mission
AVAILABLE_DRONE_STATUSES = (DroneStatus.IDLE, DroneStatus.CHARGING)

# Missions in these states no longer hold their drone in the air
TERMINAL_MISSION_STATUSES = (MissionStatus.COMPLETED, MissionStatus.ABORTED)


def utcnow() -> datetime:
    """Current time as naive UTC, the form every timestamp column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _timestamp(**kwargs) -> Column:
    # plain DateTime: values are naive UTC, see utcnow()
    return Column(DateTime(timezone=False), **kwargs)


# ===============================================================
# 🛩️ DRONES
# ===============================================================

class Drone(SQLModel, table=True):
    """
    Represents a physical drone entity with its operational state.

    `assigned_mission_id` is set if and only if `status` is In Mission.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    drone_id: str = Field(index=True, unique=True, description="Unique human-assigned drone identifier")
    model: str = Field(description="Drone model name")
    battery_level: int = Field(default=100, description="Battery percentage (0–100)")
    location: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON), description="Current position")
    status: DroneStatus = Field(default=DroneStatus.IDLE, description="Idle | In Mission | Charging | Maintenance")
    assigned_mission_id: Optional[int] = Field(default=None, index=True, description="Mission currently flown")
    created_at: datetime = Field(default_factory=utcnow, sa_column=_timestamp(nullable=False))


# ===============================================================
# 🎯 MISSIONS
# ===============================================================

class Mission(SQLModel, table=True):
    """
    Represents a scheduled survey mission and its planned flight path.
    """
    # ids are never reused, so a deleted mission's id cannot resurface
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, description="Mission name")
    location: Dict[str, Any] = Field(sa_column=Column(JSON), description="Home point with street address")
    start_time: datetime = Field(sa_column=_timestamp(index=True, nullable=False), description="Scheduled start (UTC)")
    recurrence_type: RecurrenceType = Field(default=RecurrenceType.ONCE)
    flight_path: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    flight_altitude: float = Field(description="Flight altitude in meters")
    pattern_type: PatternType
    sensor_type: SensorType
    status: MissionStatus = Field(default=MissionStatus.SCHEDULED, index=True)
    assigned_drone_id: Optional[int] = Field(default=None, index=True, description="Drone flying this mission")
    created_at: datetime = Field(default_factory=utcnow, sa_column=_timestamp(nullable=False))


# ===============================================================
# 📊 SURVEY REPORTS
# ===============================================================

class Report(SQLModel, table=True):
    """
    Post-mission survey outcome. One per completed mission, never edited.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    mission_id: int = Field(foreign_key="mission.id", unique=True, index=True)
    drone_id: int = Field(foreign_key="drone.id", description="Drone that flew the mission")
    start_time: datetime = Field(sa_column=_timestamp(nullable=False))
    end_time: datetime = Field(sa_column=_timestamp(nullable=False))
    duration: int = Field(description="Duration in minutes")
    distance: int = Field(description="Distance covered in meters")
    data_points_collected: int
    survey_coverage_percentage: int = Field(description="Coverage (0–100%)")
    status: ReportStatus
    created_at: datetime = Field(default_factory=utcnow, sa_column=_timestamp(nullable=False))
