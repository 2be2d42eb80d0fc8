"""Approval workflow library: transition rules and their errors."""

from voter_intake.lib.workflow.errors import (
    AuthorizationError,
    BatchNotFoundError,
    SubmissionInvalidError,
    SubmissionNotFoundError,
    TransitionError,
)
from voter_intake.lib.workflow.state_machine import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    Transition,
    TransitionAction,
    plan_transition,
)

__all__ = [
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "AuthorizationError",
    "BatchNotFoundError",
    "SubmissionInvalidError",
    "SubmissionNotFoundError",
    "Transition",
    "TransitionAction",
    "TransitionError",
    "plan_transition",
]
