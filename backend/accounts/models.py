"""
Accounts app models.

Defines the municipal organisation chart (departments, roles and the
positions that pair them) and a custom User model that extends Django's
``AbstractUser``.

A user with no position is a citizen.  Staff users hold one or more
positions; the role of a position carries an ``ActorClassification``
that the report lifecycle uses to decide which transitions are allowed.
External maintainers also belong to a ``reports.Company``.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class ActorClassification(models.TextChoices):
    """
    Closed set of actor kinds the report state machine keys on.

    Role names are free text and may be renamed by administrators;
    the classification is what grants or denies a transition.
    """

    CITIZEN = "citizen", "Citizen"
    PUBLIC_RELATIONS_OFFICER = "public_relations_officer", "Municipal Public Relations Officer"
    TECHNICAL_STAFF = "technical_staff", "Technical Staff"
    EXTERNAL_MAINTAINER = "external_maintainer", "External Maintainer"
    ADMINISTRATOR = "administrator", "Administrator"


class Department(models.Model):
    """
    An organisational unit of the municipality (e.g. "Public Works").
    """

    name = models.CharField(
        max_length=150,
        unique=True,
        verbose_name="Department Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )

    class Meta:
        verbose_name = "Department"
        verbose_name_plural = "Departments"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Role(models.Model):
    """
    Admin-manageable role.

    The same role may exist in several departments; each pairing is a
    ``DepartmentRole`` (a *position*).  ``classification`` drives the
    transition matrix and is never inferred from ``name``.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Role Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    classification = models.CharField(
        max_length=32,
        choices=ActorClassification.choices,
        default=ActorClassification.TECHNICAL_STAFF,
        verbose_name="Classification",
        help_text="Actor kind used to authorise report status transitions.",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["name"]

    def __str__(self):
        return self.name


class DepartmentRole(models.Model):
    """
    A position: one role inside one department.

    Assignment locks this row while it reads the caseload of the staff
    holding the position, so concurrent assignments to the same position
    are serialized.
    """

    department = models.ForeignKey(
        Department,
        on_delete=models.CASCADE,
        related_name="positions",
        verbose_name="Department",
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name="positions",
        verbose_name="Role",
    )

    class Meta:
        verbose_name = "Position"
        verbose_name_plural = "Positions"
        ordering = ["department__name", "role__name"]
        constraints = [
            models.UniqueConstraint(
                fields=["department", "role"],
                name="unique_department_role",
            ),
        ]

    def __str__(self):
        return f"{self.role.name} @ {self.department.name}"


class User(AbstractUser):
    """
    Custom user model for the municipal reporting system.

    Citizens register with username, email and password and hold no
    position.  Municipal staff are given one or more positions by an
    administrator.
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )

    positions = models.ManyToManyField(
        DepartmentRole,
        blank=True,
        related_name="staff",
        verbose_name="Positions",
    )
    company = models.ForeignKey(
        "reports.Company",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="maintainers",
        verbose_name="Company",
        help_text="Employer of an external maintainer.",
    )

    REQUIRED_FIELDS = ["email", "first_name", "last_name"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.username} ({self.get_full_name()})"
