"""
reports.transitions — Report status state machine.

The allowed edges of the report lifecycle and who may take them::

  PENDING_APPROVAL
    → ASSIGNED      (public relations officer approves, or an external
                     maintainer takes the report directly)
    → REJECTED      (public relations officer, reason required)

  ASSIGNED / IN_PROGRESS / SUSPENDED
    → IN_PROGRESS   (technical staff; not from IN_PROGRESS itself)
    → SUSPENDED     (technical staff; not from SUSPENDED itself)
    → RESOLVED      (technical staff or external maintainer)
    → REJECTED      (public relations officer)

  REJECTED, RESOLVED → terminal

Citizens and administrators hold no edge.  Anything not listed in
``ALLOWED_TRANSITIONS`` is denied.
"""

from __future__ import annotations

from accounts.models import ActorClassification
from core.domain.exceptions import InsufficientRights, InvalidArgument

from .models import ReportStatus

PRO = ActorClassification.PUBLIC_RELATIONS_OFFICER
TECH = ActorClassification.TECHNICAL_STAFF
EXTERNAL = ActorClassification.EXTERNAL_MAINTAINER

#: Maps ``(from_status, to_status)`` → classifications allowed to take the edge.
ALLOWED_TRANSITIONS: dict[tuple[str, str], frozenset[str]] = {
    # ── Approval ────────────────────────────────────────────────────
    (ReportStatus.PENDING_APPROVAL, ReportStatus.ASSIGNED): frozenset({PRO, EXTERNAL}),
    (ReportStatus.PENDING_APPROVAL, ReportStatus.REJECTED): frozenset({PRO}),
    # ── Technical work ──────────────────────────────────────────────
    (ReportStatus.ASSIGNED, ReportStatus.IN_PROGRESS): frozenset({TECH}),
    (ReportStatus.ASSIGNED, ReportStatus.SUSPENDED): frozenset({TECH}),
    (ReportStatus.ASSIGNED, ReportStatus.RESOLVED): frozenset({TECH, EXTERNAL}),
    (ReportStatus.IN_PROGRESS, ReportStatus.SUSPENDED): frozenset({TECH}),
    (ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED): frozenset({TECH, EXTERNAL}),
    (ReportStatus.SUSPENDED, ReportStatus.IN_PROGRESS): frozenset({TECH}),
    (ReportStatus.SUSPENDED, ReportStatus.RESOLVED): frozenset({TECH, EXTERNAL}),
    # ── Late rejection ──────────────────────────────────────────────
    (ReportStatus.ASSIGNED, ReportStatus.REJECTED): frozenset({PRO}),
    (ReportStatus.IN_PROGRESS, ReportStatus.REJECTED): frozenset({PRO}),
    (ReportStatus.SUSPENDED, ReportStatus.REJECTED): frozenset({PRO}),
}

_STATUS_VALUES = frozenset(ReportStatus.values)


def is_known_status(value: object) -> bool:
    return isinstance(value, str) and value in _STATUS_VALUES


def can_transition(current: str, requested: str, classification: str) -> bool:
    """
    Return ``True`` when ``classification`` may move a report from
    ``current`` to ``requested``.

    Pure lookup.  Unknown statuses or classifications are denied.
    """
    allowed = ALLOWED_TRANSITIONS.get((current, requested))
    if not allowed:
        return False
    return classification in allowed


def authorize_transition(current: str, requested: str, classification: str) -> None:
    """
    Raise unless the transition is permitted.

    Raises:
        InvalidArgument:    ``requested`` is not a report status.
        InsufficientRights: the edge does not exist or is not granted
                            to ``classification``.
    """
    if not is_known_status(requested):
        raise InvalidArgument(f"Unknown report status '{requested}'.")
    if not can_transition(current, requested, classification):
        raise InsufficientRights(
            f"A {classification} cannot move a report from "
            f"'{current}' to '{requested}'."
        )


def allowed_targets(current: str, classification: str) -> list[str]:
    """Statuses ``classification`` may move a report in ``current`` to."""
    return [
        to_status
        for (from_status, to_status), allowed in ALLOWED_TRANSITIONS.items()
        if from_status == current and classification in allowed
    ]


def can_reach(requested: str, classification: str) -> bool:
    """``True`` when ``classification`` holds at least one edge into ``requested``."""
    return any(
        classification in allowed
        for (_, to_status), allowed in ALLOWED_TRANSITIONS.items()
        if to_status == requested
    )
