from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlmodel import Session, select

from ..errors import DataInconsistencyError
from ..models import AuditRecord, CalendarDay, Role
from .base import CalendarProvider, RoleDirectory
from .simulated import WeekdayCalendar, _as_date

logger = logging.getLogger(__name__)


class DatabaseCalendar(CalendarProvider):
    """Working-day calendar backed by the ``calendar_days`` table."""

    def __init__(self, session: Session):
        self.session = session

    def deadline_after(self, start: date, business_days: int) -> date:
        if business_days <= 0:
            raise DataInconsistencyError(
                f"Business day count must be positive, got {business_days}"
            )

        start_day = _as_date(start)
        deadline = self.session.exec(
            select(CalendarDay.day)
            .where(CalendarDay.day > start_day, CalendarDay.is_working == True)  # noqa: E712
            .order_by(CalendarDay.day)
            .offset(business_days - 1)
            .limit(1)
        ).first()

        if deadline is None:
            # Calendar not filled that far ahead
            logger.warning(
                "Calendar has no working day %d after %s, counting weekdays",
                business_days, start_day
            )
            return WeekdayCalendar().deadline_after(start_day, business_days)
        return deadline


class HistoryRoleDirectory(RoleDirectory):
    """Resolves a person's role from the roles they held in past audit records."""

    def __init__(self, session: Session):
        self.session = session

    def role_of(self, person_name: str) -> Optional[Role]:
        role = self.session.exec(
            select(AuditRecord.recipient_role)
            .where(AuditRecord.recipient_name == person_name)
            .order_by(AuditRecord.id.desc())
        ).first()
        if role is not None:
            return role

        role = self.session.exec(
            select(AuditRecord.sender_role)
            .where(AuditRecord.sender_name == person_name, AuditRecord.sender_role != None)  # noqa: E711
            .order_by(AuditRecord.id.desc())
        ).first()
        if role is None:
            logger.debug("Role not found in history for %s", person_name)
        return role
