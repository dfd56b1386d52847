# ===============================================================
# backend/app/schemas.py
# ===============================================================
"""
Request payloads accepted by the Mission Planner API.

Table models in models.py are never built straight from client JSON;
payloads are validated here first and then copied onto the tables.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .models import PatternType, RecurrenceType, SensorType


def _naive_utc(value: datetime) -> datetime:
    """SQLite keeps no timezone, so aware datetimes are stored as naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ===============================================================
# 📍 GEOGRAPHY
# ===============================================================

def _check_lng_lat(value: List[float]) -> List[float]:
    if len(value) != 2:
        raise ValueError("Coordinates must be a [longitude, latitude] pair")
    lng, lat = value
    if not -180 <= lng <= 180 or not -90 <= lat <= 90:
        raise ValueError("Coordinates out of range")
    return value


class GeoPoint(BaseModel):
    type: str = "Point"
    coordinates: List[float] = Field(description="[longitude, latitude]")

    @field_validator("type")
    @classmethod
    def _only_points(cls, value: str) -> str:
        if value != "Point":
            raise ValueError("Only Point geometries are supported")
        return value

    @field_validator("coordinates")
    @classmethod
    def _lng_lat_pair(cls, value: List[float]) -> List[float]:
        return _check_lng_lat(value)


class MissionLocation(GeoPoint):
    address: str = Field(min_length=1)


# ===============================================================
# 🛩️ DRONES
# ===============================================================

class DroneCreate(BaseModel):
    drone_id: str = Field(min_length=1)
    model: str = Field(min_length=1)
    battery_level: int = Field(default=100, ge=0, le=100)
    location: GeoPoint


class DroneStatusUpdate(BaseModel):
    # Checked by the service so the dashboard sees its own messages.
    status: Optional[str] = None
    assigned_mission_id: Optional[int] = None


# ===============================================================
# 🎯 MISSIONS
# ===============================================================

class MissionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    location: MissionLocation
    start_time: datetime
    recurrence_type: RecurrenceType = RecurrenceType.ONCE
    flight_path: List[GeoPoint]
    flight_altitude: float = Field(gt=0)
    pattern_type: PatternType
    sensor_type: SensorType
    assigned_drone_id: Optional[int] = None

    @field_validator("flight_path")
    @classmethod
    def _non_empty_path(cls, value: List[GeoPoint]) -> List[GeoPoint]:
        if not value:
            raise ValueError("Please add flight path coordinates")
        return value

    @field_validator("start_time")
    @classmethod
    def _store_naive(cls, value: datetime) -> datetime:
        return _naive_utc(value)


class MissionUpdate(BaseModel):
    """Partial update. Only fields present in the request body are applied."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    location: Optional[MissionLocation] = None
    start_time: Optional[datetime] = None
    recurrence_type: Optional[RecurrenceType] = None
    flight_path: Optional[List[GeoPoint]] = None
    flight_altitude: Optional[float] = Field(default=None, gt=0)
    pattern_type: Optional[PatternType] = None
    sensor_type: Optional[SensorType] = None
    assigned_drone_id: Optional[int] = None

    @field_validator("flight_path")
    @classmethod
    def _non_empty_path(cls, value: Optional[List[GeoPoint]]) -> Optional[List[GeoPoint]]:
        if value is not None and not value:
            raise ValueError("Please add flight path coordinates")
        return value

    @field_validator("start_time")
    @classmethod
    def _store_naive(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(value) if value is not None else None

    @field_validator("name", "location", "start_time", "recurrence_type", "flight_path",
                     "flight_altitude", "pattern_type", "sensor_type", mode="before")
    @classmethod
    def _no_null_for_required(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value


# ===============================================================
# 📡 MONITORING
# ===============================================================

class ReportedLocation(BaseModel):
    """Position sent by a vehicle; a report without coordinates carries no position."""
    type: str = "Point"
    coordinates: Optional[List[float]] = None

    @field_validator("coordinates")
    @classmethod
    def _lng_lat_pair(cls, value: Optional[List[float]]) -> Optional[List[float]]:
        return _check_lng_lat(value) if value is not None else None


class PositionUpdate(BaseModel):
    # Unknown statuses are ignored rather than rejected.
    status: Optional[str] = None
    current_location: Optional[ReportedLocation] = None
    battery_level: Optional[int] = Field(default=None, ge=0, le=100)
