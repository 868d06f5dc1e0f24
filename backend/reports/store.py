"""
reports.store — Persistence boundary for reports.

Every ORM access the lifecycle needs goes through ``ReportStore`` so the
service layer only sees domain exceptions:

* a missing report       → ``NotFound``
* a conditional write
  that matched no row    → ``StaleState``
* a constraint violation → ``Conflict``
* any other DB failure   → ``InfrastructureError`` (retryable)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from django.contrib.auth import get_user_model
from django.db.models import Count

from accounts.models import DepartmentRole
from core.domain.exceptions import NotFound, StaleState
from core.domain.transactions import (
    compare_and_set,
    lock_for_update,
    translate_db_errors,
)

from .models import ACTIVE_STATUSES, Report, ReportStatusLog

logger = logging.getLogger(__name__)

User = get_user_model()


class ReportStore:
    """Thin, stateless wrapper over the report tables."""

    # ── Reports ─────────────────────────────────────────────────────

    def load_report(self, report_id: int) -> Report:
        with translate_db_errors("report lookup"):
            try:
                return Report.objects.get(pk=report_id)
            except Report.DoesNotExist:
                raise NotFound(f"Report with id {report_id} not found.")

    def create_report(self, **fields: Any) -> Report:
        with translate_db_errors("report creation"):
            return Report.objects.create(**fields)

    def save_report(self, report: Report, expected_prior_status: str) -> Report:
        """
        Write ``status``, both assignees and ``rejection_reason`` of
        ``report`` only if the stored status is still
        ``expected_prior_status``.

        Raises:
            StaleState: the row changed since it was read.
        """
        with translate_db_errors("report update"):
            written = compare_and_set(
                Report,
                report.pk,
                field="status",
                expected=expected_prior_status,
                values={
                    "status": report.status,
                    "assignee_id": report.assignee_id,
                    "external_assignee_id": report.external_assignee_id,
                    "rejection_reason": report.rejection_reason,
                },
            )
            if not written:
                raise StaleState(expected=expected_prior_status)
            report.refresh_from_db(fields=["updated_at"])
        return report

    def append_status_log(
        self,
        report: Report,
        *,
        from_status: str,
        to_status: str,
        changed_by_id: int | None,
        message: str = "",
    ) -> ReportStatusLog:
        with translate_db_errors("status log write"):
            return ReportStatusLog.objects.create(
                report=report,
                from_status=from_status,
                to_status=to_status,
                changed_by_id=changed_by_id,
                message=message,
            )

    # ── Staff & caseload ────────────────────────────────────────────

    def lock_position(self, position: DepartmentRole) -> DepartmentRole:
        """
        Row-lock ``position`` until the surrounding transaction ends.

        Raises:
            NotFound: the position was deleted.
        """
        with translate_db_errors("position lock"):
            return lock_for_update(DepartmentRole, position.pk)

    def list_staff_by_position(self, position: DepartmentRole) -> list[int]:
        """Ids of the active users holding ``position``, ascending."""
        with translate_db_errors("staff lookup"):
            return list(
                User.objects
                .filter(positions=position, is_active=True)
                .order_by("id")
                .values_list("id", flat=True)
            )

    def count_active_reports_by_assignee(
        self,
        position: DepartmentRole,
        staff_ids: Iterable[int] | None = None,
    ) -> dict[int, int]:
        """
        Active caseload of every staff member of ``position``.

        Pass ``staff_ids`` when they were already listed in the same
        transaction.  Staff without active reports are present with ``0``.
        """
        if staff_ids is None:
            staff_ids = self.list_staff_by_position(position)
        counts = {staff_id: 0 for staff_id in staff_ids}
        if not counts:
            return counts
        with translate_db_errors("caseload count"):
            rows = (
                Report.objects
                .filter(assignee_id__in=list(counts), status__in=ACTIVE_STATUSES)
                .values("assignee_id")
                .annotate(total=Count("id"))
            )
            for row in rows:
                counts[row["assignee_id"]] = row["total"]
        return counts

    # ── External maintainers ────────────────────────────────────────

    def load_user(self, user_id: int) -> Any:
        with translate_db_errors("user lookup"):
            try:
                return User.objects.select_related("company").get(pk=user_id)
            except User.DoesNotExist:
                raise NotFound(f"User with id {user_id} not found.")
