"""
Error taxonomy for the leave workflow.

Reviewer and submission errors are caller-visible rejections of one
action. ExternalServiceFailure is recovered inside the submission
builder and never reaches the workflow engine.
"""


class WorkflowError(Exception):
    """Base class for all leave workflow errors."""


class NotReviewerTurnError(WorkflowError):
    """Raised when a reviewer acts out of turn or on a terminal application."""

    def __init__(self, application_id: str, reviewer_role: str, reason: str):
        self.application_id = application_id
        self.reviewer_role = reviewer_role
        self.reason = reason
        super().__init__(
            f"Application {application_id} is not awaiting {reviewer_role}: {reason}"
        )


class InvalidDecisionError(WorkflowError, ValueError):
    """Raised when a decision other than APPROVED or REJECTED is submitted."""


class UnknownApplicantError(WorkflowError):
    """Raised when the submitting identity is missing or structurally invalid."""


class InvalidClassError(WorkflowError, ValueError):
    """Raised when class data does not match the applicant's role."""


class ApplicationNotFoundError(WorkflowError, KeyError):
    """Raised when an application id is not in the registry."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Application not found"


class DuplicateApplicationError(WorkflowError):
    """Raised when an application id is already registered."""


class WorkflowInvariantError(WorkflowError, AssertionError):
    """Raised when overall status disagrees with the stage statuses."""


class ExternalServiceFailure(RuntimeError):
    """Raised by text generation backends when no usable text was produced."""
