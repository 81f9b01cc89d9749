"""API routers for the church administration service."""

from app.routers import (
    announcements,
    auth,
    cells,
    contributions,
    events,
    members,
    ministries,
)  # noqa: F401
