"""
Service-level tests for report creation and status changes.

Notifications are written after commit, so every test that checks them
runs the transition inside ``captureOnCommitCallbacks(execute=True)``.
"""

from __future__ import annotations

from unittest import mock

from django.contrib.auth import get_user_model
from django.db import OperationalError
from django.test import TestCase

from accounts.models import ActorClassification, Department, DepartmentRole, Role
from core.domain.exceptions import (
    Conflict,
    InfrastructureError,
    InsufficientRights,
    InvalidArgument,
    NoStaffAvailable,
    NotFound,
    StaleState,
    ValidationError,
)
from core.models import Notification
from reports.models import (
    ASSIGNEE_STATUSES,
    CategoryRoleMapping,
    Company,
    Report,
    ReportCategory,
    ReportStatus,
    ReportStatusLog,
)
from reports.services import CreateReportInput, ReportLifecycleService, ReportQueryService
from reports.store import ReportStore

User = get_user_model()

S = ReportStatus
C = ActorClassification

INSIDE = (45.0703, 7.6869)
OUTSIDE = (41.9028, 12.4964)


def _position(department: str, role: str, classification: str) -> DepartmentRole:
    dept, _ = Department.objects.get_or_create(name=department)
    role_obj, _ = Role.objects.get_or_create(name=role, defaults={"classification": classification})
    position, _ = DepartmentRole.objects.get_or_create(department=dept, role=role_obj)
    return position


def _user(username: str, *positions: DepartmentRole) -> User:
    user = User.objects.create_user(
        username=username,
        password="TestPass123!",
        email=f"{username}@civic.test",
    )
    if positions:
        user.positions.set(positions)
    return user


def _input(**overrides) -> CreateReportInput:
    values = {
        "title": "Street lamp out",
        "description": "The lamp at the corner has been dark for a week.",
        "category": ReportCategory.PUBLIC_LIGHTING,
        "latitude": INSIDE[0],
        "longitude": INSIDE[1],
    }
    values.update(overrides)
    return CreateReportInput(**values)


def _seed_caseload(assignee: User, count: int) -> None:
    for i in range(count):
        Report.objects.create(
            title=f"Existing {i}",
            description="Already being handled.",
            category=ReportCategory.PUBLIC_LIGHTING,
            latitude=INSIDE[0],
            longitude=INSIDE[1],
            status=S.ASSIGNED,
            assignee=assignee,
        )


class FlakyStore(ReportStore):
    """Reports a concurrent modification on the first ``failures`` writes."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.attempts = 0

    def save_report(self, report, expected_prior_status):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise StaleState(expected=expected_prior_status)
        return super().save_report(report, expected_prior_status)


class LifecycleTestBase(TestCase):

    @classmethod
    def setUpTestData(cls) -> None:
        cls.pro_position = _position(
            "Organization", "Municipal Public Relations Officer", C.PUBLIC_RELATIONS_OFFICER,
        )
        cls.lighting_position = _position(
            "Public Lighting Department", "Electrical staff member", C.TECHNICAL_STAFF,
        )
        cls.maintainer_position = _position(
            "External Service Providers", "External Maintainer", C.EXTERNAL_MAINTAINER,
        )
        CategoryRoleMapping.objects.create(
            category=ReportCategory.PUBLIC_LIGHTING,
            role=cls.lighting_position.role,
        )

        cls.citizen = _user("citizen")
        cls.pro = _user("pro", cls.pro_position)
        cls.busy_tech = _user("busy_tech", cls.lighting_position)
        cls.free_tech = _user("free_tech", cls.lighting_position)
        cls.maintainer = _user("maintainer", cls.maintainer_position)

        _seed_caseload(cls.busy_tech, 3)
        _seed_caseload(cls.free_tech, 1)

    def setUp(self) -> None:
        self.service = ReportLifecycleService()

    def _create(self, **overrides) -> Report:
        return self.service.create_report(_input(**overrides), reporter_id=self.citizen.pk)

    def _approve(self, report: Report) -> Report:
        return self.service.change_status(
            report.pk, S.ASSIGNED, self.pro.pk, C.PUBLIC_RELATIONS_OFFICER,
        )

    def _notifications_for(self, user: User) -> list[str]:
        return list(
            Notification.objects.filter(recipient=user).values_list("content", flat=True)
        )


class TestCreateReport(LifecycleTestBase):

    def test_new_report_is_pending_and_unassigned(self):
        report = self._create()

        report.refresh_from_db()
        self.assertEqual(report.status, S.PENDING_APPROVAL)
        self.assertIsNone(report.assignee_id)
        self.assertEqual(report.reporter_id, self.citizen.pk)

    def test_creation_writes_initial_log_row(self):
        report = self._create()

        log = ReportStatusLog.objects.get(report=report)
        self.assertEqual(log.from_status, "")
        self.assertEqual(log.to_status, S.PENDING_APPROVAL)
        self.assertEqual(log.changed_by_id, self.citizen.pk)

    def test_location_outside_boundary_is_rejected(self):
        before = Report.objects.count()
        with self.assertRaises(ValidationError):
            self._create(latitude=OUTSIDE[0], longitude=OUTSIDE[1])
        self.assertEqual(Report.objects.count(), before)

    def test_malformed_coordinate_is_rejected(self):
        with self.assertRaises(ValidationError):
            self._create(latitude=float("nan"))

    def test_huge_integer_coordinate_is_rejected(self):
        before = Report.objects.count()
        with self.assertRaises(ValidationError):
            self._create(latitude=10**400, longitude=7)
        self.assertEqual(Report.objects.count(), before)

    def test_unknown_category_is_rejected(self):
        with self.assertRaises(ValidationError):
            self._create(category="potholes")

    def test_blank_title_is_rejected(self):
        with self.assertRaises(ValidationError):
            self._create(title="   ")

    def test_anonymous_report_keeps_reporter_internally(self):
        report = self._create(is_anonymous=True)
        self.assertTrue(report.is_anonymous)
        self.assertEqual(report.reporter_id, self.citizen.pk)


class TestAssignment(LifecycleTestBase):

    def test_approval_assigns_least_loaded_staff(self):
        report = self._create()

        with self.captureOnCommitCallbacks(execute=True):
            updated = self._approve(report)

        self.assertEqual(updated.status, S.ASSIGNED)
        self.assertEqual(updated.assignee_id, self.free_tech.pk)
        report.refresh_from_db()
        self.assertEqual(report.assignee_id, self.free_tech.pk)

    def test_approval_notifies_reporter_and_assignee(self):
        report = self._create()

        with self.captureOnCommitCallbacks(execute=True):
            self._approve(report)

        self.assertEqual(
            self._notifications_for(self.citizen),
            [f'Your report #{report.pk} "Street lamp out" is now Assigned.'],
        )
        self.assertEqual(
            self._notifications_for(self.free_tech),
            [f'Report #{report.pk} "Street lamp out" has been assigned to you.'],
        )
        self.assertEqual(self._notifications_for(self.busy_tech), [])

    def test_approval_is_logged(self):
        report = self._create()
        self._approve(report)

        last = ReportStatusLog.objects.filter(report=report).order_by("-id").first()
        self.assertEqual(last.from_status, S.PENDING_APPROVAL)
        self.assertEqual(last.to_status, S.ASSIGNED)
        self.assertEqual(last.changed_by_id, self.pro.pk)

    def test_consecutive_approvals_balance_the_caseload(self):
        first = self._approve(self._create())
        second = self._approve(self._create())
        third = self._approve(self._create())

        # free_tech: 1 → 2 → 3, then ties with busy_tech at 3 and keeps the lower id.
        self.assertEqual(first.assignee_id, self.free_tech.pk)
        self.assertEqual(second.assignee_id, self.free_tech.pk)
        self.assertEqual(third.assignee_id, self.busy_tech.pk)

    def test_external_maintainer_can_take_pending_report(self):
        report = self._create()

        updated = self.service.change_status(
            report.pk, S.ASSIGNED, self.maintainer.pk, C.EXTERNAL_MAINTAINER,
        )

        self.assertEqual(updated.status, S.ASSIGNED)
        self.assertEqual(updated.assignee_id, self.free_tech.pk)

    def test_no_staff_leaves_report_pending(self):
        waste = _position("Waste Management Department", "Recycling Program staff member",
                          C.TECHNICAL_STAFF)
        CategoryRoleMapping.objects.create(category=ReportCategory.WASTE, role=waste.role)
        report = self._create(category=ReportCategory.WASTE)

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(NoStaffAvailable):
                self._approve(report)

        report.refresh_from_db()
        self.assertEqual(report.status, S.PENDING_APPROVAL)
        self.assertIsNone(report.assignee_id)
        self.assertEqual(ReportStatusLog.objects.filter(report=report).count(), 1)
        self.assertEqual(self._notifications_for(self.citizen), [])

    def test_inactive_staff_are_not_picked(self):
        User.objects.filter(pk=self.free_tech.pk).update(is_active=False)
        report = self._create()

        updated = self._approve(report)

        self.assertEqual(updated.assignee_id, self.busy_tech.pk)


class TestStatusChanges(LifecycleTestBase):

    def test_citizen_cannot_start_work(self):
        report = self._approve(self._create())

        with self.assertRaises(InsufficientRights):
            self.service.change_status(report.pk, S.IN_PROGRESS, self.citizen.pk, C.CITIZEN)

        report.refresh_from_db()
        self.assertEqual(report.status, S.ASSIGNED)
        self.assertEqual(report.assignee_id, self.free_tech.pk)

    def test_technical_staff_work_cycle_keeps_assignee(self):
        report = self._approve(self._create())
        tech = self.free_tech.pk

        for target in (S.IN_PROGRESS, S.SUSPENDED, S.IN_PROGRESS, S.RESOLVED):
            report = self.service.change_status(report.pk, target, tech, C.TECHNICAL_STAFF)
            self.assertEqual(report.status, target)
            self.assertEqual(report.assignee_id, self.free_tech.pk)

        self.assertEqual(
            list(
                ReportStatusLog.objects.filter(report=report)
                .order_by("created_at", "id")
                .values_list("to_status", flat=True)
            ),
            [S.PENDING_APPROVAL, S.ASSIGNED, S.IN_PROGRESS, S.SUSPENDED, S.IN_PROGRESS, S.RESOLVED],
        )

    def test_resolved_report_is_terminal(self):
        report = self._approve(self._create())
        self.service.change_status(report.pk, S.RESOLVED, self.maintainer.pk, C.EXTERNAL_MAINTAINER)

        with self.assertRaises(InsufficientRights):
            self.service.change_status(
                report.pk, S.REJECTED, self.pro.pk, C.PUBLIC_RELATIONS_OFFICER, reason="Late",
            )

    def test_repeated_transition_is_a_conflict_without_new_notifications(self):
        report = self._create()
        with self.captureOnCommitCallbacks(execute=True):
            self._approve(report)
        before = Notification.objects.count()

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(Conflict):
                self._approve(report)

        self.assertEqual(Notification.objects.count(), before)
        self.assertEqual(ReportStatusLog.objects.filter(report=report).count(), 2)

    def test_repeat_by_actor_without_rights_is_forbidden_not_conflict(self):
        report = self._approve(self._create())

        with self.assertRaises(InsufficientRights):
            self.service.change_status(report.pk, S.ASSIGNED, self.citizen.pk, C.CITIZEN)
        with self.assertRaises(InsufficientRights):
            self.service.change_status(
                report.pk, S.ASSIGNED, self.free_tech.pk, C.TECHNICAL_STAFF,
            )

    def test_repeat_by_staff_who_could_set_it_is_conflict(self):
        report = self._approve(self._create())
        self.service.change_status(report.pk, S.IN_PROGRESS, self.free_tech.pk, C.TECHNICAL_STAFF)

        with self.assertRaises(Conflict):
            self.service.change_status(
                report.pk, S.IN_PROGRESS, self.free_tech.pk, C.TECHNICAL_STAFF,
            )

    def test_unknown_status_is_invalid_argument(self):
        report = self._create()
        with self.assertRaises(InvalidArgument):
            self.service.change_status(report.pk, "closed", self.pro.pk, C.PUBLIC_RELATIONS_OFFICER)

    def test_unknown_report_is_not_found(self):
        with self.assertRaises(NotFound):
            self.service.change_status(999_999, S.ASSIGNED, self.pro.pk, C.PUBLIC_RELATIONS_OFFICER)

    def test_assignee_invariant_holds_for_every_report(self):
        report = self._approve(self._create())
        self.service.change_status(report.pk, S.IN_PROGRESS, self.free_tech.pk, C.TECHNICAL_STAFF)
        rejected = self._create()
        self.service.change_status(
            rejected.pk, S.REJECTED, self.pro.pk, C.PUBLIC_RELATIONS_OFFICER, reason="Duplicate",
        )
        self._create()

        for status_value, assignee_id in Report.objects.values_list("status", "assignee_id"):
            self.assertEqual(
                assignee_id is not None,
                status_value in ASSIGNEE_STATUSES,
                msg=f"{status_value} with assignee {assignee_id}",
            )


class TestRejection(LifecycleTestBase):

    def test_reason_is_required(self):
        report = self._create()

        for reason in (None, "", "   "):
            with self.assertRaises(ValidationError):
                self.service.change_status(
                    report.pk, S.REJECTED, self.pro.pk, C.PUBLIC_RELATIONS_OFFICER, reason=reason,
                )

        report.refresh_from_db()
        self.assertEqual(report.status, S.PENDING_APPROVAL)

    def test_rejecting_pending_report(self):
        report = self._create()

        with self.captureOnCommitCallbacks(execute=True):
            updated = self.service.change_status(
                report.pk, S.REJECTED, self.pro.pk, C.PUBLIC_RELATIONS_OFFICER,
                reason="Not a municipal matter",
            )

        self.assertEqual(updated.status, S.REJECTED)
        self.assertIsNone(updated.assignee_id)
        self.assertEqual(updated.rejection_reason, "Not a municipal matter")
        log = ReportStatusLog.objects.filter(report=report).order_by("-id").first()
        self.assertEqual(log.message, "Not a municipal matter")
        self.assertEqual(
            self._notifications_for(self.citizen),
            [
                f'Your report #{report.pk} "Street lamp out" is now Rejected. '
                f"Reason: Not a municipal matter"
            ],
        )

    def test_rejecting_assigned_report_releases_assignee(self):
        report = self._approve(self._create())

        with self.captureOnCommitCallbacks(execute=True):
            updated = self.service.change_status(
                report.pk, S.REJECTED, self.pro.pk, C.PUBLIC_RELATIONS_OFFICER,
                reason="Duplicate of another report",
            )

        self.assertIsNone(updated.assignee_id)
        self.assertEqual(
            self._notifications_for(self.free_tech),
            [f'Report #{report.pk} "Street lamp out" is no longer assigned to you (Rejected).'],
        )

    def test_technical_staff_cannot_reject(self):
        report = self._approve(self._create())
        with self.assertRaises(InsufficientRights):
            self.service.change_status(
                report.pk, S.REJECTED, self.free_tech.pk, C.TECHNICAL_STAFF, reason="No",
            )


class TestAnonymousReports(LifecycleTestBase):

    def test_anonymous_reporter_is_not_notified(self):
        report = self._create(is_anonymous=True)

        with self.captureOnCommitCallbacks(execute=True):
            self._approve(report)

        self.assertEqual(self._notifications_for(self.citizen), [])
        self.assertEqual(len(self._notifications_for(self.free_tech)), 1)


class TestConcurrentModification(LifecycleTestBase):

    def test_single_stale_write_is_retried(self):
        store = FlakyStore(failures=1)
        service = ReportLifecycleService(store=store)
        report = self._create()

        updated = service.change_status(report.pk, S.ASSIGNED, self.pro.pk, C.PUBLIC_RELATIONS_OFFICER)

        self.assertEqual(store.attempts, 2)
        self.assertEqual(updated.status, S.ASSIGNED)
        self.assertEqual(ReportStatusLog.objects.filter(report=report).count(), 2)

    def test_persistent_stale_writes_become_conflict(self):
        store = FlakyStore(failures=2)
        service = ReportLifecycleService(store=store)
        report = self._create()

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(Conflict) as ctx:
                service.change_status(report.pk, S.ASSIGNED, self.pro.pk, C.PUBLIC_RELATIONS_OFFICER)

        self.assertNotIsInstance(ctx.exception, StaleState)
        self.assertEqual(store.attempts, 2)
        report.refresh_from_db()
        self.assertEqual(report.status, S.PENDING_APPROVAL)
        self.assertIsNone(report.assignee_id)
        self.assertEqual(Notification.objects.count(), 0)

    def test_write_conditioned_on_prior_status(self):
        report = self._create()
        Report.objects.filter(pk=report.pk).update(status=S.REJECTED, rejection_reason="x")
        report.status = S.ASSIGNED
        report.assignee_id = self.free_tech.pk

        with self.assertRaises(StaleState):
            ReportStore().save_report(report, expected_prior_status=S.PENDING_APPROVAL)


class TestStoreFailures(LifecycleTestBase):

    def test_position_lock_failure_is_infrastructure_error(self):
        report = self._create()

        with mock.patch(
            "reports.store.lock_for_update",
            side_effect=OperationalError("database is locked"),
        ):
            with self.assertRaises(InfrastructureError):
                self._approve(report)

        report.refresh_from_db()
        self.assertEqual(report.status, S.PENDING_APPROVAL)
        self.assertIsNone(report.assignee_id)

    def test_position_lookup_failure_is_infrastructure_error(self):
        report = self._create()

        with mock.patch(
            "reports.routing.RoleDirectory.positions_for_role",
            side_effect=OperationalError("server closed the connection"),
        ):
            with self.assertRaises(InfrastructureError):
                self._approve(report)

        report.refresh_from_db()
        self.assertEqual(report.status, S.PENDING_APPROVAL)

    def test_category_mapping_failure_is_infrastructure_error(self):
        report = self._create()

        with mock.patch.object(
            CategoryRoleMapping.objects,
            "get",
            side_effect=OperationalError("database is locked"),
        ):
            with self.assertRaises(InfrastructureError):
                self._approve(report)

        report.refresh_from_db()
        self.assertEqual(report.status, S.PENDING_APPROVAL)


class TestAssignExternal(LifecycleTestBase):

    @classmethod
    def setUpTestData(cls) -> None:
        super().setUpTestData()
        cls.lighting_company = Company.objects.create(
            name="Lumen Services", category=ReportCategory.PUBLIC_LIGHTING,
        )
        cls.waste_company = Company.objects.create(
            name="Clean City", category=ReportCategory.WASTE,
        )
        cls.maintainer.company = cls.lighting_company
        cls.maintainer.save(update_fields=["company"])
        cls.waste_maintainer = _user("waste_maintainer", cls.maintainer_position)
        cls.waste_maintainer.company = cls.waste_company
        cls.waste_maintainer.save(update_fields=["company"])

    def _hand_over(self, report: Report, maintainer: User, actor: User = None,
                   classification: str = C.TECHNICAL_STAFF) -> Report:
        actor = actor or self.free_tech
        return self.service.assign_external(report.pk, maintainer.pk, actor.pk, classification)

    def test_assigned_report_is_handed_over_and_keeps_assignee(self):
        report = self._approve(self._create())

        with self.captureOnCommitCallbacks(execute=True):
            updated = self._hand_over(report, self.maintainer)

        report.refresh_from_db()
        self.assertEqual(report.external_assignee_id, self.maintainer.pk)
        self.assertEqual(report.assignee_id, self.free_tech.pk)
        self.assertEqual(report.status, S.ASSIGNED)
        self.assertEqual(updated.external_assignee_id, self.maintainer.pk)
        self.assertEqual(
            self._notifications_for(self.maintainer),
            [f'Report #{report.pk} "Street lamp out" has been handed to Lumen Services.'],
        )

    def test_only_technical_staff_can_hand_over(self):
        report = self._approve(self._create())

        for actor, classification in (
            (self.pro, C.PUBLIC_RELATIONS_OFFICER),
            (self.citizen, C.CITIZEN),
            (self.maintainer, C.EXTERNAL_MAINTAINER),
        ):
            with self.assertRaises(InsufficientRights):
                self._hand_over(report, self.maintainer, actor, classification)

        report.refresh_from_db()
        self.assertIsNone(report.external_assignee_id)

    def test_report_must_be_assigned(self):
        pending = self._create()
        with self.assertRaises(Conflict):
            self._hand_over(pending, self.maintainer)

        started = self._approve(self._create())
        self.service.change_status(started.pk, S.IN_PROGRESS, self.free_tech.pk, C.TECHNICAL_STAFF)
        with self.assertRaises(Conflict):
            self._hand_over(started, self.maintainer)

    def test_target_must_be_an_external_maintainer(self):
        report = self._approve(self._create())
        with self.assertRaises(ValidationError):
            self._hand_over(report, self.busy_tech)

    def test_company_must_handle_the_category(self):
        report = self._approve(self._create())
        with self.assertRaises(ValidationError):
            self._hand_over(report, self.waste_maintainer)

    def test_maintainer_without_company_is_refused(self):
        loner = _user("loner", self.maintainer_position)
        report = self._approve(self._create())
        with self.assertRaises(ValidationError):
            self._hand_over(report, loner)

    def test_unknown_maintainer(self):
        report = self._approve(self._create())
        with self.assertRaises(NotFound):
            self.service.assign_external(report.pk, 999_999, self.free_tech.pk, C.TECHNICAL_STAFF)

    def test_rejection_clears_external_maintainer(self):
        report = self._approve(self._create())
        self._hand_over(report, self.maintainer)

        updated = self.service.change_status(
            report.pk, S.REJECTED, self.pro.pk, C.PUBLIC_RELATIONS_OFFICER, reason="Duplicate",
        )

        self.assertIsNone(updated.external_assignee_id)
        report.refresh_from_db()
        self.assertIsNone(report.external_assignee_id)

    def test_handed_over_report_shows_in_maintainers_list(self):
        report = self._approve(self._create())
        self._hand_over(report, self.maintainer)

        assigned = ReportQueryService.list_assigned(self.maintainer)

        self.assertEqual([r.pk for r in assigned], [report.pk])

    def test_stale_write_is_retried(self):
        store = FlakyStore(failures=1)
        service = ReportLifecycleService(store=store)
        report = self._approve(self._create())

        updated = service.assign_external(
            report.pk, self.maintainer.pk, self.free_tech.pk, C.TECHNICAL_STAFF,
        )

        self.assertEqual(store.attempts, 2)
        self.assertEqual(updated.external_assignee_id, self.maintainer.pk)
