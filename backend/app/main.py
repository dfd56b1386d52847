# ===============================================================
# backend/app/main.py
# ===============================================================

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session
import logging
import os
import random

from backend.app import crud, monitor, reports
from backend.app.database import init_db, get_session
from backend.app.errors import InternalError, MissionPlannerError
from backend.app.schemas import (
    DroneCreate, DroneStatusUpdate, MissionCreate, MissionUpdate, PositionUpdate,
)

# ===============================================================
# GLOBAL CONFIG
# ===============================================================

LOG_LEVEL = os.getenv("MP_LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("MP_CORS_ORIGINS", "*").split(",") if o.strip()]

# Optional fixed seed so simulated telemetry and reports can be replayed
SIM_SEED = os.getenv("MP_SIM_SEED")

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("backend.app")

app = FastAPI(title="Drone Survey Mission Planner API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

_rng = random.Random(int(SIM_SEED) if SIM_SEED else None)


def get_rng() -> random.Random:
    """Random source for simulated monitoring and report data."""
    return _rng


def ok(data, **extra) -> dict:
    """Success envelope: {"success": true, "data": ...}."""
    return {"success": True, **extra, "data": data}


# ===============================================================
# STARTUP
# ===============================================================

@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Backend online")


# ===============================================================
# ERROR ENVELOPE
# ===============================================================

@app.exception_handler(MissionPlannerError)
async def planner_error(request: Request, exc: MissionPlannerError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(RequestValidationError)
async def invalid_request(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"][1:])
        problems.append(f"{field}: {err['msg']}" if field else err["msg"])
    return JSONResponse(status_code=400, content={"success": False, "error": "; ".join(problems)})


@app.exception_handler(Exception)
async def server_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError("Server Error")
    return JSONResponse(status_code=error.status_code, content={"success": False, "error": error.message})


@app.get("/")
def index():
    return {"message": "Welcome to the Drone Survey Mission Planner API"}


# ===============================================================
# DRONES
# ===============================================================

@app.get("/api/drones")
def list_drones(session: Session = Depends(get_session)):
    drones = [crud.drone_to_dict(session, d) for d in crud.list_drones(session)]
    return ok(drones, count=len(drones))

@app.post("/api/drones", status_code=201)
def create_drone(payload: DroneCreate, session: Session = Depends(get_session)):
    return ok(crud.create_drone(session, payload))

@app.get("/api/drones/{drone_pk}")
def get_drone(drone_pk: int, session: Session = Depends(get_session)):
    return ok(crud.drone_to_dict(session, crud.get_drone(session, drone_pk)))

@app.put("/api/drones/{drone_pk}/status")
def update_drone_status(drone_pk: int, payload: DroneStatusUpdate, session: Session = Depends(get_session)):
    return ok(crud.update_drone_status(session, drone_pk, payload))


# ===============================================================
# MISSIONS
# ===============================================================

@app.get("/api/missions")
def list_missions(session: Session = Depends(get_session)):
    missions = [crud.mission_to_dict(session, m) for m in crud.list_missions(session)]
    return ok(missions, count=len(missions))

@app.post("/api/missions", status_code=201)
def create_mission(payload: MissionCreate, session: Session = Depends(get_session)):
    return ok(crud.create_mission(session, payload))

@app.get("/api/missions/{mission_id}")
def get_mission(mission_id: int, session: Session = Depends(get_session)):
    return ok(crud.mission_to_dict(session, crud.get_mission(session, mission_id)))

@app.put("/api/missions/{mission_id}")
def update_mission(mission_id: int, patch: MissionUpdate, session: Session = Depends(get_session)):
    return ok(crud.update_mission(session, mission_id, patch))

@app.delete("/api/missions/{mission_id}")
def delete_mission(mission_id: int, session: Session = Depends(get_session)):
    crud.delete_mission(session, mission_id)
    return ok({})


# ===============================================================
# MONITORING (simulated)
# ===============================================================

@app.get("/api/monitor/drone/{drone_id}/telemetry")
def drone_telemetry(drone_id: str, session: Session = Depends(get_session), rng: random.Random = Depends(get_rng)):
    return ok(monitor.get_drone_telemetry(session, drone_id, rng))

@app.get("/api/monitor/{mission_id}")
def mission_snapshot(mission_id: int, session: Session = Depends(get_session), rng: random.Random = Depends(get_rng)):
    return ok(monitor.get_mission_snapshot(session, mission_id, rng))

@app.post("/api/monitor/{mission_id}/update")
def report_position(mission_id: int, update: PositionUpdate, session: Session = Depends(get_session)):
    return ok(monitor.report_position(session, mission_id, update))


# ===============================================================
# REPORTS
# ===============================================================

@app.get("/api/reports")
def list_reports(session: Session = Depends(get_session)):
    rows = reports.list_reports(session)
    return ok(rows, count=len(rows))

@app.post("/api/reports/generate/{mission_id}", status_code=201)
def generate_report(mission_id: int, session: Session = Depends(get_session), rng: random.Random = Depends(get_rng)):
    return ok(reports.generate_report(session, mission_id, rng))

@app.get("/api/reports/{report_id}/download")
def download_report(report_id: int, session: Session = Depends(get_session)):
    return ok(reports.download_report(session, report_id), message="Report download initiated")

@app.get("/api/reports/{mission_id}")
def report_by_mission(mission_id: int, session: Session = Depends(get_session), rng: random.Random = Depends(get_rng)):
    return ok(reports.get_report_by_mission(session, mission_id, rng))


# ===============================================================
# DASHBOARD
# ===============================================================

@app.get("/api/dashboard/stats")
def dashboard_stats(session: Session = Depends(get_session)):
    return ok(crud.get_stats(session))

@app.get("/api/dashboard/recent")
def dashboard_recent(session: Session = Depends(get_session)):
    return ok(crud.get_recent_missions(session))

@app.get("/api/dashboard/monthly-activity")
def dashboard_monthly_activity(session: Session = Depends(get_session)):
    return ok(crud.get_monthly_activity(session))
