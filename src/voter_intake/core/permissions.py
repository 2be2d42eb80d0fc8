"""Role capabilities and the per-request actor context.

``allowed_actions`` is the single capability table: API dependencies, the
service layer and the approval state machine all consult it rather than
comparing role names inline.
"""

import enum
import uuid
from dataclasses import dataclass


class Role(enum.StrEnum):
    """User roles supplied by the identity layer."""

    SUBMITTER = "submitter"
    APPROVER = "approver"
    ADMIN = "admin"


class Action(enum.StrEnum):
    """Capabilities a role may hold."""

    CREATE = "create"
    SUBMIT = "submit"
    INGEST = "ingest"
    REVIEW = "review"
    VIEW_ALL = "view_all"
    MANAGE_USERS = "manage_users"


_SUBMITTER_ACTIONS = frozenset({Action.CREATE, Action.SUBMIT, Action.INGEST})
_APPROVER_ACTIONS = frozenset({Action.REVIEW, Action.VIEW_ALL})

_ROLE_ACTIONS: dict[Role, frozenset[Action]] = {
    Role.SUBMITTER: _SUBMITTER_ACTIONS,
    Role.APPROVER: _APPROVER_ACTIONS,
    Role.ADMIN: _SUBMITTER_ACTIONS | _APPROVER_ACTIONS | {Action.MANAGE_USERS},
}


def allowed_actions(role: str) -> frozenset[Action]:
    """Return the capabilities granted to ``role``.

    Unknown roles get no capabilities.
    """
    try:
        return _ROLE_ACTIONS[Role(role)]
    except ValueError:
        return frozenset()


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, resolved once per request.

    Attributes:
        user_id: Id of the acting user.
        role: The user's role name.
    """

    user_id: uuid.UUID
    role: str

    def can(self, action: Action) -> bool:
        """Return True when the actor's role grants ``action``."""
        return action in allowed_actions(self.role)
