"""
Domain errors raised by the lifecycle, document and reimbursement services.

Views translate them into HTTP responses; services never return error codes.
"""


class LifecycleError(Exception):
    """Base class for application lifecycle errors."""

    def __init__(self, message, rule=None):
        super().__init__(message)
        self.message = message
        self.rule = rule

    def to_dict(self):
        data = {"status": "error", "message": self.message}
        if self.rule:
            data["rule"] = self.rule
        return data


class GuardViolation(LifecycleError):
    """A transition or attach was refused by a workflow guard."""


class NotFound(LifecycleError):
    """Application, document or record does not exist."""


class StorageFault(LifecycleError):
    """The blob store or the database failed while persisting documents."""
