"""Approval state machine rules.

The transition table is pure data; ``plan_transition`` checks the caller's
capability first and the record's status second, so an unauthorized caller
learns nothing about the record's state.
"""

import enum
from dataclasses import dataclass

from voter_intake.core.permissions import Action, allowed_actions
from voter_intake.lib.workflow.errors import AuthorizationError, TransitionError
from voter_intake.models.approval_log import LogAction
from voter_intake.models.voter_submission import SubmissionStatus


class TransitionAction(enum.StrEnum):
    """Actions a caller can request on a record."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    WITHDRAW = "withdraw"


@dataclass(frozen=True)
class Transition:
    """One allowed edge of the state machine.

    Attributes:
        action: The requested action.
        source: Status the record must currently hold.
        target: Status after the transition.
        log_action: Action recorded in the approval log.
        capability: Capability the actor's role must grant.
    """

    action: TransitionAction
    source: SubmissionStatus
    target: SubmissionStatus
    log_action: LogAction
    capability: Action


TRANSITIONS: dict[TransitionAction, Transition] = {
    TransitionAction.SUBMIT: Transition(
        TransitionAction.SUBMIT, SubmissionStatus.DRAFT, SubmissionStatus.PENDING, LogAction.SUBMITTED, Action.SUBMIT
    ),
    TransitionAction.APPROVE: Transition(
        TransitionAction.APPROVE, SubmissionStatus.PENDING, SubmissionStatus.APPROVED, LogAction.APPROVED, Action.REVIEW
    ),
    TransitionAction.REJECT: Transition(
        TransitionAction.REJECT, SubmissionStatus.PENDING, SubmissionStatus.REJECTED, LogAction.REJECTED, Action.REVIEW
    ),
    TransitionAction.WITHDRAW: Transition(
        TransitionAction.WITHDRAW, SubmissionStatus.PENDING, SubmissionStatus.DRAFT, LogAction.CANCELLED, Action.SUBMIT
    ),
}

TERMINAL_STATUSES = frozenset({SubmissionStatus.APPROVED, SubmissionStatus.REJECTED})

_NOT_IN_SOURCE = {
    SubmissionStatus.DRAFT: "Record is not in draft",
    SubmissionStatus.PENDING: "Record is not pending",
}


def plan_transition(status: str, action: str, role: str) -> Transition:
    """Resolve the transition for ``action`` on a record in ``status``.

    Args:
        status: The record's current status.
        action: Requested action name.
        role: The acting user's role.

    Returns:
        The matching transition.

    Raises:
        TransitionError: If the action is unknown or the status does not match.
        AuthorizationError: If the role lacks the action's capability.
    """
    try:
        transition = TRANSITIONS[TransitionAction(action)]
    except ValueError:
        msg = f"Unknown action: {action}"
        raise TransitionError(msg) from None

    if transition.capability not in allowed_actions(role):
        msg = f"Role '{role}' may not {transition.action.value} records"
        raise AuthorizationError(msg)

    if status != transition.source:
        raise TransitionError(f"{_NOT_IN_SOURCE[transition.source]} (current status: {status})")

    return transition
