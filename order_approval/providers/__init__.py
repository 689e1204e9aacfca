from .base import CalendarProvider, RoleDirectory
from .simulated import StaticRoleDirectory, WeekdayCalendar
from .database import DatabaseCalendar, HistoryRoleDirectory

__all__ = [
    "CalendarProvider",
    "RoleDirectory",
    "WeekdayCalendar",
    "StaticRoleDirectory",
    "DatabaseCalendar",
    "HistoryRoleDirectory",
]
