from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Set

from sqlmodel import Session, select

from .models import AuditRecord, Role, StepStatus

logger = logging.getLogger(__name__)


class AuditStore:
    """Audit trail persistence for approval steps.

    Writes only flush; nothing is committed until the enclosing
    ``transaction()`` exits cleanly.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        try:
            yield self.session
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def insert(self, record: AuditRecord) -> int:
        self.session.add(record)
        self.session.flush()
        logger.debug(
            "Inserted audit record: id=%s, order_id=%s, recipient=%s",
            record.id, record.order_id, record.recipient_name
        )
        return record.id

    def update(self, record: AuditRecord) -> None:
        self.session.add(record)
        self.session.flush()

    def get(self, record_id: int) -> Optional[AuditRecord]:
        return self.session.get(AuditRecord, record_id)

    def query_by_order(self, order_id: int) -> List[AuditRecord]:
        return list(self.session.exec(
            select(AuditRecord)
            .where(AuditRecord.order_id == order_id)
            .order_by(AuditRecord.receipt_date, AuditRecord.id)
        ).all())

    def query_by_recipient(self, order_id: int, role: Role, name: str) -> List[AuditRecord]:
        return list(self.session.exec(
            select(AuditRecord)
            .where(
                AuditRecord.order_id == order_id,
                AuditRecord.recipient_role == role,
                AuditRecord.recipient_name == name,
            )
            .order_by(AuditRecord.receipt_date, AuditRecord.id)
        ).all())

    def find_open_step(self, order_id: int, role: Role, name: str) -> Optional[AuditRecord]:
        open_steps = [
            record for record in self.query_by_recipient(order_id, role, name)
            if record.status == StepStatus.in_progress
        ]
        return open_steps[-1] if open_steps else None

    def find_active_rework(self, order_id: int, role: Role, name: str) -> Optional[AuditRecord]:
        return self.session.exec(
            select(AuditRecord).where(
                AuditRecord.order_id == order_id,
                AuditRecord.recipient_role == role,
                AuditRecord.recipient_name == name,
                AuditRecord.is_rework == True,  # noqa: E712
                AuditRecord.status == StepStatus.in_progress,
            )
        ).first()

    def order_ids_with_rework(self) -> Set[int]:
        return set(self.session.exec(
            select(AuditRecord.order_id).where(AuditRecord.is_rework == True).distinct()  # noqa: E712
        ).all())
