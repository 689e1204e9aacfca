from datetime import datetime
from typing import Optional

from .models import AuditRecord, StepResult, StepStatus, TERMINAL_STATUSES


class InvalidStatusTransitionError(Exception):
    def __init__(self, current_status: StepStatus, target_status: StepStatus, message: str):
        self.current_status = current_status
        self.target_status = target_status
        self.message = message
        super().__init__(message)


def close_step(
    record: AuditRecord,
    result: StepResult,
    completed_at: datetime,
    comment: Optional[str] = None,
) -> AuditRecord:
    """Mark an open step done with the given result.

    The comment is only overwritten when one is supplied.
    """
    if record.status in TERMINAL_STATUSES:
        raise InvalidStatusTransitionError(
            record.status,
            StepStatus.done,
            f"Cannot transition from '{record.status.value}'. Step is closed."
        )

    record.status = StepStatus.done
    record.result = result
    record.completion_date = completed_at
    if comment is not None:
        record.comment = comment
    return record
