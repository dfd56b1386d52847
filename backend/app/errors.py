# ===============================================================
# backend/app/errors.py
# ===============================================================
"""
Service-layer error taxonomy for the Drone Mission Planner.

Every error carries the HTTP status the API layer reports it with.
The message string is shown to the dashboard as-is.
"""


class MissionPlannerError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MissionPlannerError):
    """Malformed or missing input."""

    status_code = 400


class NotFoundError(MissionPlannerError):
    """A referenced drone, mission or report does not exist."""

    status_code = 404


class ConflictError(MissionPlannerError):
    """The change would break the drone/mission link or a uniqueness rule."""

    status_code = 400


class InternalError(MissionPlannerError):
    """Unexpected storage or runtime failure."""

    status_code = 500
