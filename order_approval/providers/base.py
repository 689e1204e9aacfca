from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from ..models import Role


class CalendarProvider(ABC):
    @abstractmethod
    def deadline_after(self, start: date, business_days: int) -> date:
        """Return the Nth business day strictly after ``start``.

        Raises DataInconsistencyError when ``business_days`` is not positive.
        """
        pass


class RoleDirectory(ABC):
    @abstractmethod
    def role_of(self, person_name: str) -> Optional[Role]:
        pass
