from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, get_settings
from .decisions import ApproveDecision, RejectDecision
from .errors import (
    ApprovalError,
    DataInconsistencyError,
    DuplicateReworkError,
    InvalidDecisionError,
    NoActiveStepError,
    OrderAlreadyStartedError,
    PersistenceError,
    RecipientNotFoundError,
)
from .history import HistoryNode, build_tree
from .lineage import RecordMap, find_rejecting_ancestor, index_records, reparent
from .models import ROLE_LABELS, AuditRecord, StepResult
from .providers.base import CalendarProvider, RoleDirectory
from .roles import ActingUser, Recipient, RolePolicy, default_successor, get_policy
from .state_machine import close_step
from .store import AuditStore

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    success: bool
    message: str
    # Step spawned by the transition; None on failure or on final sign-off
    record: Optional[AuditRecord] = None
    error: Optional[ApprovalError] = None
    route_complete: bool = False

    @classmethod
    def failed(cls, error: ApprovalError) -> "TransitionResult":
        return cls(success=False, message=error.message, error=error)


def _utcnow() -> datetime:
    # Timestamp columns are timezone-aware
    return datetime.now(timezone.utc)


def _label(role, name: str) -> str:
    return f"{ROLE_LABELS.get(role, role)} {name}"


class ApprovalWorkflow:
    """Routes one order's approval steps between roles.

    Each public action runs as a single transaction against the audit store
    and reports the outcome as a ``TransitionResult`` instead of raising.
    """

    def __init__(
        self,
        store: AuditStore,
        calendar: CalendarProvider,
        roles: RoleDirectory,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.calendar = calendar
        self.roles = roles
        self.settings = settings or get_settings()
        self._clock = clock or _utcnow

    def open_order(
        self,
        order_id: int,
        sender: ActingUser,
        recipient: Recipient,
        comment: Optional[str] = None,
    ) -> TransitionResult:
        try:
            record = self._open_order(order_id, sender, recipient, comment)
        except ApprovalError as e:
            logger.warning("Could not open order %s: %s", order_id, e.message)
            return TransitionResult.failed(e)

        return TransitionResult(
            success=True,
            message=f"Order {order_id} sent to {_label(recipient.role, recipient.name)}",
            record=record,
        )

    def approve(self, user: ActingUser, order_id: int, decision: ApproveDecision) -> TransitionResult:
        logger.debug("Approve requested: order_id=%s, user=%s", order_id, user.name)
        try:
            next_step = self._approve(user, order_id, decision)
        except ApprovalError as e:
            logger.warning("Approve failed: order_id=%s, user=%s, reason=%s", order_id, user.name, e.message)
            return TransitionResult.failed(e)

        if next_step is None:
            return TransitionResult(
                success=True,
                message=f"Order {order_id} approved, approval route complete",
                route_complete=True,
            )
        return TransitionResult(
            success=True,
            message=f"Order {order_id} approved and sent to "
                    f"{_label(next_step.recipient_role, next_step.recipient_name)}",
            record=next_step,
        )

    def reject(self, user: ActingUser, order_id: int, decision: RejectDecision) -> TransitionResult:
        logger.debug("Reject requested: order_id=%s, user=%s", order_id, user.name)
        try:
            rework = self._reject(user, order_id, decision)
        except ApprovalError as e:
            logger.warning("Reject failed: order_id=%s, user=%s, reason=%s", order_id, user.name, e.message)
            return TransitionResult.failed(e)

        return TransitionResult(
            success=True,
            message=f"Order {order_id} sent back to "
                    f"{_label(rework.recipient_role, rework.recipient_name)} for rework",
            record=rework,
        )

    def history(self, order_id: int) -> List[HistoryNode]:
        return build_tree(self.store.query_by_order(order_id))

    def _open_order(
        self,
        order_id: int,
        sender: ActingUser,
        recipient: Recipient,
        comment: Optional[str],
    ) -> AuditRecord:
        if self.store.query_by_order(order_id):
            raise OrderAlreadyStartedError(f"Order {order_id} already has an approval route")

        now = self._clock()
        deadline = self._deadline(now.date(), self.settings.initial_deadline_days)

        record = AuditRecord(
            order_id=order_id,
            receipt_date=now,
            deadline=deadline,
            recipient_role=recipient.role,
            recipient_name=recipient.name,
            sender_role=sender.role,
            sender_name=sender.name,
            comment=comment,
        )
        with self._atomic(order_id):
            self.store.insert(record)

        logger.info(
            "Order opened: order_id=%s, recipient=%s, deadline=%s",
            order_id, recipient.name, deadline
        )
        return record

    def _approve(self, user: ActingUser, order_id: int, decision: ApproveDecision) -> Optional[AuditRecord]:
        current = self.store.find_open_step(order_id, user.role, user.name)
        if current is None:
            raise NoActiveStepError(f"No open approval step for {user.name} on order {order_id}")

        policy = get_policy(user.role)
        if policy.approve_requires_manufacturing_term and decision.manufacturing_term is None:
            raise InvalidDecisionError("Manufacturing term is required to approve the order")
        by_id = index_records(self.store.query_by_order(order_id))

        successor = self._next_recipient(current, user)
        now = self._clock()

        deadline = None
        if successor is not None:
            start = decision.manufacturing_term or now.date()
            deadline = self._deadline(start, decision.business_days or policy.deadline_days(self.settings))

        with self._atomic(order_id):
            close_step(current, StepResult.approved, now, decision.comment)
            self.store.update(current)

            if successor is None:
                logger.info("Order fully approved: order_id=%s, last approver=%s", order_id, user.name)
                return None

            next_step = AuditRecord(
                order_id=order_id,
                parent_id=self._successor_parent(current, successor, by_id),
                receipt_date=now,
                deadline=deadline,
                recipient_role=successor.role,
                recipient_name=successor.name,
                sender_role=user.role,
                sender_name=user.name,
            )
            self.store.insert(next_step)
            by_id[next_step.id] = next_step

            # The finished rework hangs under the step that picks the order back up
            if current.is_rework:
                for moved in reparent(current, next_step, by_id):
                    self.store.update(moved)

        logger.info(
            "Order approved: order_id=%s, step=%s, next=%s, parent_id=%s",
            order_id, current.id, successor.name, next_step.parent_id
        )
        return next_step

    def _reject(self, user: ActingUser, order_id: int, decision: RejectDecision) -> AuditRecord:
        policy = get_policy(user.role)
        current = self.store.find_open_step(order_id, user.role, user.name)

        if current is None:
            # A repeated reject finds its step closed and still reports the duplicate
            named = self._named_recipient(decision)
            if named is not None:
                self._check_no_active_rework(order_id, named)
            raise NoActiveStepError(f"No open approval step for {user.name} on order {order_id}")

        recipient = self._rework_recipient(policy, decision, current)
        self._check_no_active_rework(order_id, recipient)

        now = self._clock()
        deadline = self._deadline(now.date(), decision.business_days or policy.deadline_days(self.settings))

        with self._atomic(order_id):
            close_step(current, StepResult.rejected, now, decision.comment)
            self.store.update(current)

            rework = AuditRecord(
                order_id=order_id,
                parent_id=current.id,
                receipt_date=now,
                deadline=deadline,
                recipient_role=recipient.role,
                recipient_name=recipient.name,
                sender_role=user.role,
                sender_name=user.name,
                comment=decision.comment,
                is_rework=True,
            )
            self.store.insert(rework)

        logger.info(
            "Order sent back for rework: order_id=%s, step=%s, recipient=%s",
            order_id, current.id, recipient.name
        )
        return rework

    def _next_recipient(self, current: AuditRecord, user: ActingUser) -> Optional[Recipient]:
        if current.is_rework:
            sender = self._resolve_sender(current)
            if sender is not None:
                logger.debug("Rework step %s approved, returning to %s", current.id, sender.name)
                return sender
            logger.warning("Sender of rework step %s cannot be resolved, using default route", current.id)
        return default_successor(user.role, self.settings)

    def _resolve_sender(self, record: AuditRecord) -> Optional[Recipient]:
        if not record.sender_name:
            return None
        role = record.sender_role or self.roles.role_of(record.sender_name)
        if role is None:
            return None
        return Recipient(role, record.sender_name)

    def _successor_parent(self, current: AuditRecord, successor: Recipient, by_id: RecordMap) -> Optional[int]:
        if current.is_rework:
            parent_id = find_rejecting_ancestor(current, successor.name, by_id)
            return parent_id if parent_id is not None else current.parent_id

        if current.parent_id is not None:
            # Still inside a rework branch only if the order goes back to whoever opened it
            return find_rejecting_ancestor(current, successor.name, by_id)

        return None

    def _named_recipient(self, decision: RejectDecision) -> Optional[Recipient]:
        if decision.recipient_name is None:
            return None
        role = decision.recipient_role or self.roles.role_of(decision.recipient_name)
        if role is None:
            return None
        return Recipient(role, decision.recipient_name)

    def _rework_recipient(
        self,
        policy: RolePolicy,
        decision: RejectDecision,
        current: AuditRecord,
    ) -> Recipient:
        if decision.recipient_name is None:
            if policy.reject_falls_back_to_sender:
                sender = self._resolve_sender(current)
                if sender is not None:
                    return sender
            raise RecipientNotFoundError("Choose who the order goes back to")

        if policy.reject_requires_role and decision.recipient_role is None:
            raise InvalidDecisionError("Choose the department the order goes back to")

        recipient = self._named_recipient(decision)
        if recipient is None:
            raise RecipientNotFoundError(f"No role is known for {decision.recipient_name}")
        return recipient

    def _check_no_active_rework(self, order_id: int, recipient: Recipient) -> None:
        if self.store.find_active_rework(order_id, recipient.role, recipient.name) is not None:
            raise DuplicateReworkError(
                f"An open rework task already exists for {_label(recipient.role, recipient.name)}"
            )

    def _deadline(self, start: date, business_days: int) -> date:
        try:
            return self.calendar.deadline_after(start, business_days)
        except DataInconsistencyError as e:
            fallback = self.settings.fallback_deadline_days
            logger.warning("%s; using fallback of %d business days", e.message, fallback)
            return self.calendar.deadline_after(start, fallback)

    @contextmanager
    def _atomic(self, order_id: int) -> Iterator[None]:
        try:
            with self.store.transaction():
                yield
        except SQLAlchemyError as e:
            logger.error("Store write failed for order %s, transition rolled back: %s", order_id, e)
            raise PersistenceError(f"Could not save the approval step for order {order_id}") from e
