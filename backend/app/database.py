# ===============================================================
# backend/app/database.py
# ===============================================================
"""
Engine and session plumbing for the Mission Planner's SQLite store.
Tests build their own engine with `make_engine` and hand it to `init_db`.
"""

from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.engine import Engine
from typing import Generator
import logging
import os


logger = logging.getLogger(__name__)


# ===============================================================
# ⚙️ CONFIGURATION
# ===============================================================

# Path to SQLite database (can be overridden via environment variable)
DB_FILE = os.environ.get("MP_DB", "backend/mission_planner.db")

# Full database connection string; MP_DATABASE_URL wins over MP_DB
DATABASE_URL = os.environ.get("MP_DATABASE_URL", f"sqlite:///{DB_FILE}")


def make_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """
    Build an engine for `url`.

    "check_same_thread" is disabled for SQLite to allow FastAPI's
    threadpool to share connections.
    """
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url,
        echo=False,  # set to True for SQL query logging
        connect_args=connect_args,
        **kwargs,
    )


engine = make_engine()


# ===============================================================
# 🧱 DATABASE INITIALIZATION
# ===============================================================

def init_db(target: Engine = None) -> None:
    """Create the drone, mission and report tables on `target` (default: the app engine)."""
    from .models import Drone, Mission, Report  # noqa: F401
    target = target or engine
    SQLModel.metadata.create_all(target)
    logger.info("Database ready at %s", target.url)


# ===============================================================
# 🔁 DATABASE SESSION HANDLING
# ===============================================================

def get_session() -> Generator[Session, None, None]:
    """
    Request-scoped session for FastAPI routes.

    `expire_on_commit` is off so committed drones and missions can still be
    serialized into the response after the service layer commits.
    """
    with Session(engine, expire_on_commit=False) as session:
        yield session
