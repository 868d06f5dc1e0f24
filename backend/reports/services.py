"""
Reports app Service Layer.

This module is the **single source of truth** for all business logic
in the ``reports`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``ReportLifecycleService``  — creation and every status change.
- ``ReportQueryService``      — visibility-filtered reads.
- ``CategoryRoleService``     — category → role configuration.
- ``CompanyService``          — contractors and their maintainers.

Lifecycle Overview
------------------
::

  create_report
    → boundary check → PENDING_APPROVAL (no assignee) + log row

  change_status(report, target, actor)
    → load → same status?            Conflict (InsufficientRights for an
                                     actor holding no edge into it)
    → transition table               InsufficientRights
    → REJECTED: reason required,     assignee cleared
    → into ASSIGNED without assignee:
        category → position → least-loaded staff   (NoStaffAvailable)
    → write conditioned on the status read above   (retried once)
    → status log + notifications after commit

  assign_external(report, maintainer, technical staff)
    → ASSIGNED only → external maintainer whose company handles the
      category → kept internal assignee + maintainer notified

Every step of ``change_status`` runs in one transaction; a failure at
any point leaves the report exactly as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from django.apps import apps
from django.db import transaction
from django.db.models import Q, QuerySet

from accounts.models import ActorClassification, Department, DepartmentRole, Role
from accounts.services import RoleDirectory
from core.domain.exceptions import (
    Conflict,
    InsufficientRights,
    InvalidArgument,
    NoStaffAvailable,
    NotFound,
    StaleState,
    ValidationError,
)
from core.domain.notifications import NotificationService

from .assignment import AssignmentEngine
from .boundary import BoundaryValidator
from .models import (
    CategoryRoleMapping,
    Company,
    Report,
    ReportCategory,
    ReportStatus,
    ReportStatusLog,
)
from .routing import CategoryRoleRouter
from .store import ReportStore
from .transitions import authorize_transition, can_reach, is_known_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateReportInput:
    """Fields a citizen supplies when submitting a report."""

    title: str
    description: str
    category: str
    latitude: float
    longitude: float
    is_anonymous: bool = False
    address: str = ""


# ═══════════════════════════════════════════════════════════════════
#  Lifecycle Service
# ═══════════════════════════════════════════════════════════════════


class ReportLifecycleService:
    """
    Creates reports and moves them through their lifecycle.

    Collaborators can be injected for testing; by default the store is
    the ORM-backed ``ReportStore`` and the boundary is the one loaded by
    the ``reports`` app at start-up.
    """

    def __init__(
        self,
        store: ReportStore | None = None,
        boundary: BoundaryValidator | None = None,
        engine: AssignmentEngine | None = None,
        router: type[CategoryRoleRouter] | CategoryRoleRouter | None = None,
    ) -> None:
        self.store = store or ReportStore()
        self._boundary = boundary
        self.engine = engine or AssignmentEngine(self.store)
        self.router = router or CategoryRoleRouter

    @property
    def boundary(self) -> BoundaryValidator:
        if self._boundary is None:
            self._boundary = apps.get_app_config("reports").boundary
        return self._boundary

    # ── Creation ────────────────────────────────────────────────────

    def create_report(self, data: CreateReportInput, reporter_id: int | None) -> Report:
        """
        Register a new report in ``PENDING_APPROVAL``.

        Raises:
            ValidationError: unknown category, blank title/description,
                             a coordinate outside the municipality, or a
                             non-anonymous report without a reporter.
        """
        if data.category not in ReportCategory.values:
            raise ValidationError(f"Unknown report category '{data.category}'.")
        if not (data.title or "").strip() or not (data.description or "").strip():
            raise ValidationError("Title and description are required.")
        if not self.boundary.contains(data.latitude, data.longitude):
            raise ValidationError(
                "The location is outside the municipal boundary."
            )
        if not data.is_anonymous and reporter_id is None:
            raise ValidationError("A non-anonymous report needs a reporter.")

        with transaction.atomic():
            report = self.store.create_report(
                title=data.title.strip(),
                description=data.description.strip(),
                category=data.category,
                latitude=float(data.latitude),
                longitude=float(data.longitude),
                address=(data.address or "").strip(),
                is_anonymous=data.is_anonymous,
                reporter_id=reporter_id,
                status=ReportStatus.PENDING_APPROVAL,
            )
            self.store.append_status_log(
                report,
                from_status="",
                to_status=ReportStatus.PENDING_APPROVAL,
                changed_by_id=reporter_id,
            )

        logger.info(
            "Report %s created (category=%s, anonymous=%s)",
            report.pk,
            report.category,
            report.is_anonymous,
        )
        return report

    # ── Status changes ──────────────────────────────────────────────

    def change_status(
        self,
        report_id: int,
        requested_status: str,
        actor_id: int | None,
        actor_classification: str,
        reason: str | None = None,
    ) -> Report:
        """
        **The central state-machine gateway.**

        Move report ``report_id`` to ``requested_status`` on behalf of an
        actor of ``actor_classification``.

        Raises:
            InvalidArgument:    ``requested_status`` is not a report status.
            NotFound:           unknown report.
            Conflict:           the report is already in that status, or it
                                kept changing concurrently.
            InsufficientRights: the actor may not take this edge.
            ValidationError:    rejection without a reason.
            NoStaffAvailable:   nobody holds the responsible position.
            NotConfigured:      the category is not routed to one position.
            InfrastructureError: the store is unavailable.
        """
        if not is_known_status(requested_status):
            raise InvalidArgument(f"Unknown report status '{requested_status}'.")

        return self._retry_once_if_stale(
            self._apply_transition,
            report_id, requested_status, actor_id, actor_classification, reason,
        )

    @staticmethod
    def _retry_once_if_stale(write, report_id: int, *args: Any) -> Report:
        try:
            return write(report_id, *args)
        except StaleState as exc:
            logger.info(
                "Report %s: stale write (%s), retrying with fresh state",
                report_id,
                exc,
            )

        try:
            return write(report_id, *args)
        except StaleState as exc:
            logger.warning("Report %s: stale write on retry, giving up", report_id)
            raise Conflict(
                f"Report #{report_id} was modified concurrently; "
                f"please reload it and try again."
            ) from exc

    def _apply_transition(
        self,
        report_id: int,
        requested_status: str,
        actor_id: int | None,
        actor_classification: str,
        reason: str | None,
    ) -> Report:
        with transaction.atomic():
            report = self.store.load_report(report_id)
            current = report.status

            if current == requested_status:
                if not can_reach(requested_status, actor_classification):
                    raise InsufficientRights(
                        f"A {actor_classification} cannot set a report to "
                        f"'{requested_status}'."
                    )
                raise Conflict(f"Report #{report_id} is already '{current}'.")

            authorize_transition(current, requested_status, actor_classification)

            previous_assignee_id = report.assignee_id
            message = ""

            if requested_status == ReportStatus.REJECTED:
                reason = (reason or "").strip()
                if not reason:
                    raise ValidationError("A reason is required to reject a report.")
                report.rejection_reason = reason
                report.assignee_id = None
                report.external_assignee_id = None
                message = reason
            elif requested_status == ReportStatus.ASSIGNED and report.assignee_id is None:
                report.assignee_id = self._pick_assignee(report)

            report.status = requested_status
            self.store.save_report(report, expected_prior_status=current)
            self.store.append_status_log(
                report,
                from_status=current,
                to_status=requested_status,
                changed_by_id=actor_id,
                message=message,
            )
            self._notify(report, previous_assignee_id)

        logger.info(
            "Report %s: %s → %s by user=%s (%s), assignee=%s",
            report.pk,
            current,
            requested_status,
            actor_id,
            actor_classification,
            report.assignee_id,
        )
        return report

    def _pick_assignee(self, report: Report) -> int:
        position = self.router.resolve_position(report.category)
        staff_id = self.engine.pick(position) if position is not None else None
        if staff_id is None:
            logger.warning(
                "Report %s: no staff available for category %s",
                report.pk,
                report.category,
            )
            raise NoStaffAvailable(
                f"No staff member is available to handle "
                f"'{report.get_category_display()}' reports."
            )
        return staff_id

    @staticmethod
    def _notify(report: Report, previous_assignee_id: int | None) -> None:
        label = ReportStatus(report.status).label

        if report.reporter_id is not None and not report.is_anonymous:
            content = f"Your report #{report.pk} \"{report.title}\" is now {label}."
            if report.status == ReportStatus.REJECTED:
                content += f" Reason: {report.rejection_reason}"
            NotificationService.enqueue(report.reporter_id, content, report.pk)

        if report.assignee_id is not None and report.assignee_id != previous_assignee_id:
            NotificationService.enqueue(
                report.assignee_id,
                f"Report #{report.pk} \"{report.title}\" has been assigned to you.",
                report.pk,
            )

        if previous_assignee_id is not None and report.assignee_id != previous_assignee_id:
            NotificationService.enqueue(
                previous_assignee_id,
                f"Report #{report.pk} \"{report.title}\" is no longer assigned "
                f"to you ({label}).",
                report.pk,
            )

    # ── External maintainers ────────────────────────────────────────

    def assign_external(
        self,
        report_id: int,
        maintainer_id: int,
        actor_id: int | None,
        actor_classification: str,
    ) -> Report:
        """
        Hand an assigned report to an external maintainer.

        The internal assignee is kept; the maintainer must work for a
        company that handles the report's category.

        Raises:
            InsufficientRights: the actor is not technical staff.
            NotFound:           unknown report or maintainer.
            Conflict:           the report is not ``ASSIGNED``, or it kept
                                changing concurrently.
            ValidationError:    the user is not an external maintainer, or
                                their company handles another category.
        """
        if actor_classification != ActorClassification.TECHNICAL_STAFF:
            raise InsufficientRights(
                "Only technical staff can hand a report to an external maintainer."
            )
        return self._retry_once_if_stale(
            self._apply_external_assignment, report_id, maintainer_id, actor_id,
        )

    def _apply_external_assignment(
        self,
        report_id: int,
        maintainer_id: int,
        actor_id: int | None,
    ) -> Report:
        with transaction.atomic():
            report = self.store.load_report(report_id)
            if report.status != ReportStatus.ASSIGNED:
                raise Conflict(
                    f"Only assigned reports can be handed to an external "
                    f"maintainer; report #{report_id} is '{report.status}'."
                )

            maintainer = self.store.load_user(maintainer_id)
            if (
                RoleDirectory.resolve_actor(maintainer).classification
                != ActorClassification.EXTERNAL_MAINTAINER
            ):
                raise ValidationError(f"User {maintainer_id} is not an external maintainer.")
            company = maintainer.company
            if company is None or company.category != report.category:
                raise ValidationError(
                    f"The maintainer's company does not handle "
                    f"'{report.get_category_display()}' reports."
                )

            previous_id = report.external_assignee_id
            report.external_assignee_id = maintainer.pk
            self.store.save_report(report, expected_prior_status=ReportStatus.ASSIGNED)

            if previous_id != maintainer.pk:
                NotificationService.enqueue(
                    maintainer.pk,
                    f"Report #{report.pk} \"{report.title}\" has been handed to "
                    f"{company.name}.",
                    report.pk,
                )

        logger.info(
            "Report %s handed to external maintainer=%s (%s) by user=%s",
            report.pk,
            maintainer.pk,
            company.name,
            actor_id,
        )
        return report


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════


class ReportQueryService:
    """
    Read access to reports.

    Reports awaiting approval are visible to public relations officers
    and to their own reporter only.  Everything else is public.
    """

    @staticmethod
    def _visible_to(user: Any) -> tuple[QuerySet, str]:
        actor = RoleDirectory.resolve_actor(user)
        qs = Report.objects.select_related("reporter", "assignee", "external_assignee")
        if actor.classification != ActorClassification.PUBLIC_RELATIONS_OFFICER:
            qs = qs.filter(~Q(status=ReportStatus.PENDING_APPROVAL) | Q(reporter=user))
        return qs, actor.classification

    @staticmethod
    def list_reports(
        user: Any,
        *,
        status: str | None = None,
        category: str | None = None,
    ) -> QuerySet:
        """
        Reports visible to ``user``, newest first.

        Raises:
            InvalidArgument:    unknown ``status`` or ``category``.
            InsufficientRights: a non-PRO filters on ``pending_approval``.
        """
        qs, classification = ReportQueryService._visible_to(user)

        if status:
            if not is_known_status(status):
                raise InvalidArgument(f"Unknown report status '{status}'.")
            if (
                status == ReportStatus.PENDING_APPROVAL
                and classification != ActorClassification.PUBLIC_RELATIONS_OFFICER
            ):
                raise InsufficientRights(
                    "Only public relations officers can list reports "
                    "awaiting approval."
                )
            qs = qs.filter(status=status)

        if category:
            if category not in ReportCategory.values:
                raise InvalidArgument(f"Unknown report category '{category}'.")
            qs = qs.filter(category=category)

        return qs.order_by("-created_at", "-id")

    @staticmethod
    def get_report(user: Any, report_id: int) -> Report:
        qs, _ = ReportQueryService._visible_to(user)
        try:
            return qs.get(pk=report_id)
        except Report.DoesNotExist:
            raise NotFound(f"Report with id {report_id} not found.")

    @staticmethod
    def list_assigned(user: Any, *, status: str | None = None) -> QuerySet:
        """
        Reports ``user`` works on, as assignee or external maintainer,
        most recently updated first.
        """
        qs = (
            Report.objects
            .select_related("reporter", "assignee", "external_assignee")
            .filter(Q(assignee=user) | Q(external_assignee=user))
        )
        if status:
            if not is_known_status(status):
                raise InvalidArgument(f"Unknown report status '{status}'.")
            qs = qs.filter(status=status)
        return qs.order_by("-updated_at", "-id")

    @staticmethod
    def status_log(user: Any, report_id: int) -> QuerySet:
        report = ReportQueryService.get_report(user, report_id)
        return (
            ReportStatusLog.objects
            .filter(report=report)
            .select_related("changed_by", "report")
            .order_by("created_at", "id")
        )


# ═══════════════════════════════════════════════════════════════════
#  Category → Role Configuration
# ═══════════════════════════════════════════════════════════════════


class CategoryRoleService:
    """Maintains the ``CategoryRoleMapping`` table."""

    @staticmethod
    def list_mappings() -> QuerySet:
        return CategoryRoleMapping.objects.select_related("role", "department").order_by("category")

    @staticmethod
    @transaction.atomic
    def upsert_mapping(
        user: Any,
        *,
        category: str,
        role_id: int,
        department_id: int | None = None,
    ) -> CategoryRoleMapping:
        """
        Create or replace the mapping for ``category``.  Administrators only.

        Raises:
            InsufficientRights: the caller is not an administrator.
            ValidationError:    unknown category, or the role is not held
                                in the given department.
            NotFound:           unknown role or department.
        """
        RoleDirectory.require(user, ActorClassification.ADMINISTRATOR)

        if category not in ReportCategory.values:
            raise ValidationError(f"Unknown report category '{category}'.")
        if not Role.objects.filter(pk=role_id).exists():
            raise NotFound(f"Role with id {role_id} not found.")
        if department_id is not None:
            if not Department.objects.filter(pk=department_id).exists():
                raise NotFound(f"Department with id {department_id} not found.")
            if not DepartmentRole.objects.filter(
                role_id=role_id, department_id=department_id
            ).exists():
                raise ValidationError(
                    "The role does not exist in the selected department."
                )

        mapping, created = CategoryRoleMapping.objects.update_or_create(
            category=category,
            defaults={"role_id": role_id, "department_id": department_id},
        )
        logger.info(
            "Category %s %s → role=%s department=%s by user=%s",
            category,
            "mapped" if created else "remapped",
            role_id,
            department_id,
            user.pk,
        )
        return mapping


# ═══════════════════════════════════════════════════════════════════
#  External Companies
# ═══════════════════════════════════════════════════════════════════


class CompanyService:
    """Contractor companies and their external maintainers."""

    @staticmethod
    def list_companies(*, category: str | None = None) -> QuerySet:
        qs = Company.objects.all()
        if category:
            if category not in ReportCategory.values:
                raise InvalidArgument(f"Unknown report category '{category}'.")
            qs = qs.filter(category=category)
        return qs.order_by("name")

    @staticmethod
    def get_company(company_id: int) -> Company:
        try:
            return Company.objects.get(pk=company_id)
        except Company.DoesNotExist:
            raise NotFound(f"Company with id {company_id} not found.")

    @staticmethod
    @transaction.atomic
    def create_company(user: Any, *, name: str, category: str) -> Company:
        """
        Register a contractor.  Administrators only.

        Raises:
            InsufficientRights: the caller is not an administrator.
            ValidationError:    blank name or unknown category.
            Conflict:           a company with that name exists.
        """
        RoleDirectory.require(user, ActorClassification.ADMINISTRATOR)

        name = (name or "").strip()
        if not name:
            raise ValidationError("A company needs a name.")
        if category not in ReportCategory.values:
            raise ValidationError(f"Unknown report category '{category}'.")
        if Company.objects.filter(name__iexact=name).exists():
            raise Conflict(f"A company named '{name}' already exists.")

        company = Company.objects.create(name=name, category=category)
        logger.info("Company %s (%s) created by user=%s", company.pk, category, user.pk)
        return company

    @staticmethod
    def list_maintainers(company_id: int) -> QuerySet:
        company = CompanyService.get_company(company_id)
        return (
            company.maintainers
            .filter(
                is_active=True,
                positions__role__classification=ActorClassification.EXTERNAL_MAINTAINER,
            )
            .distinct()
            .order_by("id")
        )
