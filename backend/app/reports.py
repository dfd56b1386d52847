# ===============================================================
# backend/app/reports.py
# ===============================================================
"""
Post-mission survey reports.

Report figures are simulated from the `rng` passed in. Each completed
mission gets at most one report; the existence check and the insert run
in the same locked transaction, and the unique index on `mission_id`
catches anything that still slips through.
"""

import logging
import random
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .assignment import locked_transaction
from .crud import get_mission
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Drone, Mission, MissionStatus, Report, ReportStatus, utcnow

logger = logging.getLogger(__name__)

REPORT_EXISTS = "A report already exists for this mission"


def report_to_dict(session: Session, report: Report) -> dict:
    """Flatten a report with its mission and drone names for the dashboard."""
    mission = session.get(Mission, report.mission_id)
    drone = session.get(Drone, report.drone_id)
    return {
        "id": report.id,
        "mission_name": mission.name if mission else "Unknown Mission",
        "mission_id": mission.id if mission else None,
        "location": mission.location.get("address") if mission else "Unknown Location",
        "drone_id": drone.drone_id if drone else "Unknown Drone",
        "drone_model": drone.model if drone else "Unknown Model",
        "start_time": report.start_time,
        "end_time": report.end_time,
        "duration": report.duration,
        "distance": report.distance,
        "data_points_collected": report.data_points_collected,
        "survey_coverage_percentage": report.survey_coverage_percentage,
        "status": report.status,
        "created_at": report.created_at,
    }


def _find_for_mission(session: Session, mission_id: int) -> Optional[Report]:
    return session.exec(select(Report).where(Report.mission_id == mission_id)).first()


def list_reports(session: Session) -> list:
    return [report_to_dict(session, r) for r in session.exec(select(Report)).all()]


def get_report_by_mission(session: Session, mission_id: int, rng: random.Random) -> dict:
    """
    Report for a mission, or a placeholder when none exists yet.

    The placeholder carries a `message`: completed missions report that no
    report was generated, live missions get a simulated progress view.
    """
    mission = get_mission(session, mission_id)
    report = _find_for_mission(session, mission.id)

    if report is not None:
        data = report_to_dict(session, report)
        data["sensor_type"] = mission.sensor_type
        data["flight_altitude"] = mission.flight_altitude
        return data

    if mission.status == MissionStatus.COMPLETED:
        return {
            "mission_name": mission.name,
            "mission_id": mission.id,
            "location": mission.location.get("address"),
            "status": "No Report Available",
            "message": "No report has been generated for this mission yet.",
        }

    return {
        "mission_id": mission.id,
        "mission_name": mission.name,
        "location": mission.location.get("address"),
        "status": mission.status,
        "start_time": mission.start_time,
        "estimated_completion": utcnow() + timedelta(seconds=rng.randint(0, 3599)),
        "current_progress": rng.randint(0, 99) if mission.status == MissionStatus.IN_PROGRESS else 0,
        "message": "Mission is not completed yet. This is a real-time status.",
    }


def generate_report(session: Session, mission_id: int, rng: random.Random) -> Report:
    """Create the one report for a completed mission."""
    with locked_transaction(session):
        mission = get_mission(session, mission_id)
        if mission.status != MissionStatus.COMPLETED:
            raise ValidationError("Cannot generate report for a mission that is not completed")
        if _find_for_mission(session, mission.id) is not None:
            raise ConflictError(REPORT_EXISTS)
        if mission.assigned_drone_id is None:
            raise ValidationError("Cannot generate report for a mission without an assigned drone")

        duration = rng.randint(30, 89)
        report = Report(
            mission_id=mission.id,
            drone_id=mission.assigned_drone_id,
            start_time=mission.start_time,
            end_time=mission.start_time + timedelta(minutes=duration),
            duration=duration,
            distance=rng.randint(1000, 5999),
            data_points_collected=rng.randint(1000, 5999),
            survey_coverage_percentage=rng.randint(70, 99),
            # 80% completed, 20% partial
            status=ReportStatus.COMPLETED if rng.random() < 0.8 else ReportStatus.PARTIAL,
        )
        session.add(report)
        try:
            session.flush()
        except IntegrityError:
            raise ConflictError(REPORT_EXISTS)

    session.refresh(report)
    logger.info("Generated report %s for mission %s (%s)", report.id, mission.id, report.status.value)
    return report


def download_report(session: Session, report_id: int) -> dict:
    """
    Describe the downloadable report document.

    No file is rendered yet; the payload only names what would be served.
    """
    report = session.get(Report, report_id)
    if not report:
        raise NotFoundError("Report not found")
    mission = session.get(Mission, report.mission_id)
    return {
        "report_id": report.id,
        "mission_name": mission.name if mission else "Unknown Mission",
        "format": "PDF",
        "size": "2.4 MB",
        "download_url": f"/api/reports/{report.id}/download",
    }
