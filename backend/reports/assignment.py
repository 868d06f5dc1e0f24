"""
reports.assignment — Least-loaded staff selection.

``select_least_loaded`` is the pure rule: the staff member with the
fewest active reports wins, ties go to the lowest user id.

``AssignmentEngine`` applies the rule to a position.  It must run
inside the transaction that writes the assignee: it locks the position
row first, so a second assignment for the same position waits until
the first one has committed and sees its caseload.  Assignments for
different positions do not block each other.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from accounts.models import DepartmentRole

from .store import ReportStore

logger = logging.getLogger(__name__)


def select_least_loaded(
    staff_ids: Iterable[int],
    caseloads: Mapping[int, int],
) -> int | None:
    """
    Pick the staff member with the smallest caseload.

    Staff missing from ``caseloads`` count as zero.  Returns ``None``
    when ``staff_ids`` is empty.
    """
    best: tuple[int, int] | None = None
    for staff_id in staff_ids:
        key = (caseloads.get(staff_id, 0), staff_id)
        if best is None or key < best:
            best = key
    return None if best is None else best[1]


class AssignmentEngine:
    """Chooses an assignee for a position using ``ReportStore`` reads."""

    def __init__(self, store: ReportStore | None = None) -> None:
        self.store = store or ReportStore()

    def pick(self, position: DepartmentRole) -> int | None:
        """
        Lock ``position`` and return the least-loaded staff member's id,
        or ``None`` when the position has no active staff.
        """
        self.store.lock_position(position)

        staff_ids = self.store.list_staff_by_position(position)
        if not staff_ids:
            logger.warning("Position %s has no active staff", position.pk)
            return None

        caseloads = self.store.count_active_reports_by_assignee(position, staff_ids)
        chosen = select_least_loaded(staff_ids, caseloads)
        logger.info(
            "Position %s: picked user=%s (caseloads=%s)",
            position.pk,
            chosen,
            dict(caseloads),
        )
        return chosen
