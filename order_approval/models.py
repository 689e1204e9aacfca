from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional

from sqlmodel import Field, SQLModel


class Role(str, Enum):
    technologist = "technologist"
    head_order_department = "head_order_department"
    order_manager = "order_manager"


ROLE_LABELS: Dict[Role, str] = {
    Role.technologist: "Technologist",
    Role.head_order_department: "Head of order department",
    Role.order_manager: "Order manager",
}


class StepStatus(str, Enum):
    in_progress = "in_progress"
    done = "done"


class StepResult(str, Enum):
    approved = "approved"
    rejected = "rejected"


TERMINAL_STATUSES: FrozenSet[StepStatus] = frozenset({StepStatus.done})


class AuditRecord(SQLModel, table=True):
    __tablename__ = "approval_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(index=True)

    # Set only on rework branches; points at the record that caused this one.
    parent_id: Optional[int] = Field(default=None, index=True)

    receipt_date: datetime
    completion_date: Optional[datetime] = None
    deadline: Optional[date] = None

    recipient_role: Role
    recipient_name: str = Field(index=True)

    # Empty for the first step of an order
    sender_role: Optional[Role] = None
    sender_name: Optional[str] = None

    status: StepStatus = StepStatus.in_progress
    result: Optional[StepResult] = None
    comment: Optional[str] = None

    is_rework: bool = False

    @property
    def is_open(self) -> bool:
        return self.status == StepStatus.in_progress

    def sort_key(self) -> tuple:
        return (self.receipt_date, self.id if self.id is not None else 0)


class CalendarDay(SQLModel, table=True):
    __tablename__ = "calendar_days"

    day: date = Field(primary_key=True)
    is_working: bool = True
