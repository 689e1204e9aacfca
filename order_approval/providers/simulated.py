import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, Optional

from ..errors import DataInconsistencyError
from ..models import Role
from .base import CalendarProvider, RoleDirectory

logger = logging.getLogger(__name__)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


class WeekdayCalendar(CalendarProvider):
    """Monday to Friday calendar with an optional set of holidays."""

    def __init__(self, holidays: Iterable[date] = ()):
        self.holidays = frozenset(holidays)

    def is_business_day(self, day: date) -> bool:
        return day.weekday() < 5 and day not in self.holidays

    def deadline_after(self, start: date, business_days: int) -> date:
        if business_days <= 0:
            raise DataInconsistencyError(
                f"Business day count must be positive, got {business_days}"
            )

        day = _as_date(start)
        remaining = business_days
        while remaining:
            day += timedelta(days=1)
            if self.is_business_day(day):
                remaining -= 1
        return day


class StaticRoleDirectory(RoleDirectory):
    def __init__(self, roles: Optional[Dict[str, Role]] = None):
        self._roles: Dict[str, Role] = dict(roles or {})

    def register(self, person_name: str, role: Role) -> None:
        self._roles[person_name] = role

    def role_of(self, person_name: str) -> Optional[Role]:
        role = self._roles.get(person_name)
        if role is None:
            logger.debug("No role registered for %s", person_name)
        return role
