from .models import AuditRecord, CalendarDay, Role, StepResult, StepStatus, ROLE_LABELS
from .roles import ActingUser, Recipient, ROLE_POLICIES
from .decisions import ApproveDecision, RejectDecision
from .errors import (
    ApprovalError,
    NoActiveStepError,
    DuplicateReworkError,
    PersistenceError,
    DataInconsistencyError,
    RecipientNotFoundError,
    InvalidDecisionError,
    OrderAlreadyStartedError,
)
from .history import HistoryNode, build_tree, iter_nodes, render_lines
from .store import AuditStore
from .workflow import ApprovalWorkflow, TransitionResult

__all__ = [
    "AuditRecord",
    "CalendarDay",
    "Role",
    "StepResult",
    "StepStatus",
    "ROLE_LABELS",
    "ActingUser",
    "Recipient",
    "ROLE_POLICIES",
    "ApproveDecision",
    "RejectDecision",
    "ApprovalError",
    "NoActiveStepError",
    "DuplicateReworkError",
    "PersistenceError",
    "DataInconsistencyError",
    "RecipientNotFoundError",
    "InvalidDecisionError",
    "OrderAlreadyStartedError",
    "HistoryNode",
    "build_tree",
    "iter_nodes",
    "render_lines",
    "AuditStore",
    "ApprovalWorkflow",
    "TransitionResult",
]
