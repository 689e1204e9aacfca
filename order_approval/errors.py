"""Error kinds raised by the approval workflow and its collaborators."""


class ApprovalError(Exception):
    """Base exception for approval routing."""

    def __init__(self, message: str = "Approval action failed"):
        self.message = message
        super().__init__(self.message)


class NoActiveStepError(ApprovalError):
    """Raised when the acting user has no open step on the order."""
    pass


class DuplicateReworkError(ApprovalError):
    """Raised when an open rework task already targets the chosen recipient."""
    pass


class PersistenceError(ApprovalError):
    """Raised when a store write fails inside a transition."""
    pass


class DataInconsistencyError(ApprovalError):
    """Raised on recoverable bad data, e.g. a non-positive business-day count."""
    pass


class RecipientNotFoundError(ApprovalError):
    """Raised when a rework recipient cannot be resolved to a role."""
    pass


class InvalidDecisionError(ApprovalError):
    """Raised when decision data required by the acting role is missing."""
    pass


class OrderAlreadyStartedError(ApprovalError):
    """Raised when opening an order that already has an approval trail."""
    pass
