"""API routers."""

from scheduling_engine.api import (
    conflicts,
    reschedules,
    schedules,
    tasks,
    workday_settings,
)

__all__ = [
    "tasks",
    "schedules",
    "conflicts",
    "reschedules",
    "workday_settings",
]
