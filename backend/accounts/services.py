"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views must remain *thin*: they validate
input through serializers, call a service function / method, and
return the result wrapped in a DRF ``Response``.

Architecture
------------
- ``UserRegistrationService``  — citizen sign-up.
- ``RoleDirectory``            — resolves who an actor is (position and
                                 classification) and reports per-position
                                 statistics.
- ``CurrentUserService``       — "Me" endpoint helpers.
- ``StaffManagementService``   — administrator CRUD over staff accounts.
- ``DepartmentDirectory``      — departments and their staff positions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, ProtectedError, Q, QuerySet

from core.domain.exceptions import (
    Conflict,
    InsufficientRights,
    NotFound,
    ValidationError,
)

from .models import ActorClassification, Department, DepartmentRole

logger = logging.getLogger(__name__)

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Registration Service
# ═══════════════════════════════════════════════════════════════════


class UserRegistrationService:
    """
    Encapsulates the citizen registration flow.
    """

    @staticmethod
    @transaction.atomic
    def register_user(validated_data: dict[str, Any]) -> User:
        """
        Create a new citizen account.

        ``validated_data`` comes from ``RegisterRequestSerializer``.
        Citizens hold no position, so nothing else is assigned here.

        Raises
        ------
        core.domain.exceptions.Conflict
            If the username or email is already taken.
        """
        validated_data.pop("password_confirm", None)
        password = validated_data.pop("password")

        conflicts = []
        if User.objects.filter(username=validated_data.get("username")).exists():
            conflicts.append("username")
        if User.objects.filter(email__iexact=validated_data.get("email", "")).exists():
            conflicts.append("email")
        if conflicts:
            raise Conflict(
                f"The following field(s) already exist: {', '.join(conflicts)}."
            )

        user = User.objects.create_user(password=password, **validated_data)
        logger.info("Registered citizen user=%s", user.pk)
        return user


# ═══════════════════════════════════════════════════════════════════
#  Role Directory
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ActorProfile:
    """Who an actor is, as far as report transitions are concerned."""

    user_id: int | None
    department_id: int | None
    role_id: int | None
    role_name: str | None
    classification: str

    @property
    def is_staff_member(self) -> bool:
        return self.role_id is not None


class RoleDirectory:
    """
    Read-only lookups over departments, roles and positions.

    A user may hold several positions; the actor profile is built from
    the position with the lowest id.  A user with no position is a
    citizen, except superusers, who act as administrators.
    """

    @staticmethod
    def resolve_actor(user: Any) -> ActorProfile:
        """Build the ``ActorProfile`` for an authenticated user."""
        position = (
            DepartmentRole.objects
            .select_related("role")
            .filter(staff=user)
            .order_by("id")
            .first()
        )
        if position is None:
            classification = (
                ActorClassification.ADMINISTRATOR
                if user.is_superuser
                else ActorClassification.CITIZEN
            )
            return ActorProfile(
                user_id=user.pk,
                department_id=None,
                role_id=None,
                role_name=None,
                classification=classification,
            )

        return ActorProfile(
            user_id=user.pk,
            department_id=position.department_id,
            role_id=position.role_id,
            role_name=position.role.name,
            classification=position.role.classification,
        )

    @staticmethod
    def resolve_actor_by_id(user_id: int) -> ActorProfile:
        """Same as ``resolve_actor`` but starting from a user PK."""
        try:
            user = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")
        return RoleDirectory.resolve_actor(user)

    @staticmethod
    def require(user: Any, *classifications: str) -> ActorProfile:
        """
        Resolve ``user`` and raise ``InsufficientRights`` unless its
        classification is one of ``classifications``.
        """
        actor = RoleDirectory.resolve_actor(user)
        if actor.classification not in classifications:
            raise InsufficientRights(
                "Your role is not allowed to perform this action."
            )
        return actor

    @staticmethod
    def positions_for_role(role_id: int, department_id: int | None = None):
        """Positions holding ``role_id``, optionally within one department."""
        qs = DepartmentRole.objects.filter(role_id=role_id)
        if department_id is not None:
            qs = qs.filter(department_id=department_id)
        return qs.select_related("department", "role").order_by("id")

    @staticmethod
    def report_counts_by_position() -> list[dict[str, Any]]:
        """
        Number of reports currently held by the staff of each position.

        Only active reports (assigned, in progress, suspended) are
        counted.  Positions without any report appear with a zero count.
        """
        from reports.models import ACTIVE_STATUSES  # lazy import, avoids circular deps

        rows = (
            DepartmentRole.objects
            .select_related("department", "role")
            .annotate(
                report_count=Count(
                    "staff__assigned_reports",
                    filter=Q(staff__assigned_reports__status__in=ACTIVE_STATUSES),
                ),
            )
            .order_by("id")
        )
        return [
            {
                "position_id": row.pk,
                "department": row.department.name,
                "role": row.role.name,
                "report_count": row.report_count,
            }
            for row in rows
        ]


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:
    """Helpers for the ``/me/`` endpoint."""

    @staticmethod
    def get_profile(user: User) -> dict[str, Any]:
        """Return the user together with the resolved actor profile."""
        return {
            "user": user,
            "actor": RoleDirectory.resolve_actor(user),
            "positions": list(
                user.positions.select_related("department", "role").order_by("id")
            ),
        }


# ═══════════════════════════════════════════════════════════════════
#  Staff Management Service
# ═══════════════════════════════════════════════════════════════════

#: Classifications a municipality staff position may carry.  Citizens hold
#: no position and administrators are not managed through this service.
STAFF_CLASSIFICATIONS = (
    ActorClassification.PUBLIC_RELATIONS_OFFICER,
    ActorClassification.TECHNICAL_STAFF,
    ActorClassification.EXTERNAL_MAINTAINER,
)


def _taken_fields(username: str | None, email: str | None, exclude_pk: int | None = None) -> list[str]:
    others = User.objects.all()
    if exclude_pk is not None:
        others = others.exclude(pk=exclude_pk)
    taken = []
    if username and others.filter(username=username).exists():
        taken.append("username")
    if email and others.filter(email__iexact=email).exists():
        taken.append("email")
    return taken


class StaffManagementService:
    """
    Administrator operations on municipality staff accounts: creation,
    listing, profile edits, position assignment and removal.

    Every method takes the requesting user first and raises
    ``InsufficientRights`` unless it is an administrator.  A staff member
    is a user holding at least one position whose role is classified as
    public relations officer, technical staff or external maintainer.
    """

    @staticmethod
    def _staff_queryset() -> QuerySet:
        return (
            User.objects
            .filter(positions__role__classification__in=STAFF_CLASSIFICATIONS)
            .distinct()
        )

    @staticmethod
    def _load_positions(position_ids: list[int]) -> list[DepartmentRole]:
        ids = list(dict.fromkeys(position_ids or []))
        if not ids:
            raise ValidationError("A staff member needs at least one position.")
        positions = list(
            DepartmentRole.objects
            .select_related("department", "role")
            .filter(pk__in=ids)
            .order_by("id")
        )
        missing = sorted(set(ids) - {p.pk for p in positions})
        if missing:
            raise NotFound(f"Position(s) not found: {', '.join(map(str, missing))}.")
        for position in positions:
            if position.role.classification not in STAFF_CLASSIFICATIONS:
                raise ValidationError(
                    f"'{position}' is not a municipality staff position."
                )
        return positions

    @staticmethod
    def _check_company(positions: list[DepartmentRole], company_id: int | None) -> None:
        if company_id is not None:
            company_model = User._meta.get_field("company").related_model
            if not company_model.objects.filter(pk=company_id).exists():
                raise NotFound(f"Company with id {company_id} not found.")
        needs_company = any(
            p.role.classification == ActorClassification.EXTERNAL_MAINTAINER
            for p in positions
        )
        if needs_company and company_id is None:
            raise ValidationError("External maintainers must belong to a company.")

    @staticmethod
    def list_staff(
        performed_by: Any,
        *,
        department_id: int | None = None,
        classification: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> QuerySet:
        """Staff accounts, newest first, with optional filters."""
        RoleDirectory.require(performed_by, ActorClassification.ADMINISTRATOR)

        qs = StaffManagementService._staff_queryset()
        if department_id is not None:
            qs = qs.filter(positions__department_id=department_id)
        if classification:
            qs = qs.filter(positions__role__classification=classification)
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        if search:
            qs = qs.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )
        return qs.select_related("company").prefetch_related(
            "positions__department", "positions__role"
        ).order_by("-date_joined", "-id")

    @staticmethod
    def get_staff(performed_by: Any, user_id: int) -> User:
        RoleDirectory.require(performed_by, ActorClassification.ADMINISTRATOR)
        try:
            return (
                StaffManagementService._staff_queryset()
                .select_related("company")
                .get(pk=user_id)
            )
        except User.DoesNotExist:
            raise NotFound(f"Staff member with id {user_id} not found.")

    @staticmethod
    @transaction.atomic
    def create_staff(performed_by: Any, validated_data: dict[str, Any]) -> User:
        """
        Create a staff account holding ``position_ids``.

        Raises
        ------
        InsufficientRights
            The caller is not an administrator.
        NotFound
            An unknown position or company.
        ValidationError
            No position, a non-staff position, or an external maintainer
            without a company.
        Conflict
            The username or email is already taken.
        """
        RoleDirectory.require(performed_by, ActorClassification.ADMINISTRATOR)

        data = dict(validated_data)
        positions = StaffManagementService._load_positions(data.pop("position_ids", []))
        company_id = data.pop("company_id", None)
        StaffManagementService._check_company(positions, company_id)

        taken = _taken_fields(data.get("username"), data.get("email"))
        if taken:
            raise Conflict(f"The following field(s) already exist: {', '.join(taken)}.")

        password = data.pop("password")
        user = User.objects.create_user(password=password, company_id=company_id, **data)
        user.positions.set(positions)
        logger.info(
            "Staff user=%s created with positions=%s by user=%s",
            user.pk,
            [p.pk for p in positions],
            performed_by.pk,
        )
        return user

    @staticmethod
    @transaction.atomic
    def update_staff(performed_by: Any, user_id: int, validated_data: dict[str, Any]) -> User:
        """
        Edit names, email, ``is_active`` or company of a staff member.

        Raises
        ------
        Conflict
            The new email belongs to someone else.
        ValidationError
            The company is removed from an external maintainer.
        """
        user = StaffManagementService.get_staff(performed_by, user_id)
        data = dict(validated_data)

        if "email" in data and _taken_fields(None, data["email"], exclude_pk=user.pk):
            raise Conflict("The following field(s) already exist: email.")
        if "company_id" in data:
            positions = list(user.positions.select_related("role"))
            StaffManagementService._check_company(positions, data["company_id"])

        for field, value in data.items():
            setattr(user, field, value)
        user.save(update_fields=list(data) or None)
        logger.info("Staff user=%s updated (%s) by user=%s", user.pk, sorted(data), performed_by.pk)
        return user

    @staticmethod
    @transaction.atomic
    def set_positions(performed_by: Any, user_id: int, position_ids: list[int]) -> User:
        """Replace every position of a staff member."""
        user = StaffManagementService.get_staff(performed_by, user_id)
        positions = StaffManagementService._load_positions(position_ids)
        StaffManagementService._check_company(positions, user.company_id)

        user.positions.set(positions)
        logger.info(
            "Staff user=%s now holds positions=%s (set by user=%s)",
            user.pk,
            [p.pk for p in positions],
            performed_by.pk,
        )
        return user

    @staticmethod
    @transaction.atomic
    def delete_staff(performed_by: Any, user_id: int) -> None:
        """
        Delete a staff account.

        Raises
        ------
        Conflict
            The user still has reports assigned; deactivate them instead.
        """
        user = StaffManagementService.get_staff(performed_by, user_id)
        try:
            user.delete()
        except ProtectedError as exc:
            raise Conflict(
                "This staff member still has reports assigned; "
                "deactivate the account instead."
            ) from exc
        logger.info("Staff user=%s deleted by user=%s", user_id, performed_by.pk)


# ═══════════════════════════════════════════════════════════════════
#  Department Directory
# ═══════════════════════════════════════════════════════════════════


class DepartmentDirectory:
    """Administrator read access to the organisation chart."""

    @staticmethod
    def list_departments(performed_by: Any) -> QuerySet:
        RoleDirectory.require(performed_by, ActorClassification.ADMINISTRATOR)
        return Department.objects.annotate(
            position_count=Count("positions", distinct=True),
        ).order_by("name")

    @staticmethod
    def list_positions(performed_by: Any, department_id: int) -> QuerySet:
        """
        Staff positions of one department, i.e. the ones that can be
        handed to municipality users.
        """
        RoleDirectory.require(performed_by, ActorClassification.ADMINISTRATOR)
        if not Department.objects.filter(pk=department_id).exists():
            raise NotFound(f"Department with id {department_id} not found.")
        return (
            DepartmentRole.objects
            .filter(
                department_id=department_id,
                role__classification__in=STAFF_CLASSIFICATIONS,
            )
            .select_related("department", "role")
            .order_by("role__name")
        )
