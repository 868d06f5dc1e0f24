"""
Reports app models.

Covers the citizen report lifecycle: submission inside the municipal
boundary, approval or rejection by the public relations office,
assignment to the least-loaded member of the responsible position,
and the technical work that follows until the report is resolved.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class ReportStatus(models.TextChoices):
    """Lifecycle states of a report.  ``REJECTED`` and ``RESOLVED`` are terminal."""

    PENDING_APPROVAL = "pending_approval", "Pending Approval"
    ASSIGNED = "assigned", "Assigned"
    IN_PROGRESS = "in_progress", "In Progress"
    SUSPENDED = "suspended", "Suspended"
    REJECTED = "rejected", "Rejected"
    RESOLVED = "resolved", "Resolved"


class ReportCategory(models.TextChoices):
    """Problem categories a citizen can pick from."""

    WATER_SUPPLY = "water_supply", "Water Supply - Drinking Water"
    ARCHITECTURAL_BARRIERS = "architectural_barriers", "Architectural Barriers"
    SEWER_SYSTEM = "sewer_system", "Sewer System"
    PUBLIC_LIGHTING = "public_lighting", "Public Lighting"
    WASTE = "waste", "Waste"
    ROAD_SIGNS_AND_TRAFFIC_LIGHTS = "road_signs_and_traffic_lights", "Road Signs and Traffic Lights"
    ROADS_AND_URBAN_FURNISHINGS = "roads_and_urban_furnishings", "Roads and Urban Furnishings"
    PUBLIC_GREEN_AREAS_AND_PLAYGROUNDS = "public_green_areas_and_playgrounds", "Public Green Areas and Playgrounds"
    OTHER = "other", "Other"


# Statuses that count toward a staff member's caseload.
ACTIVE_STATUSES = (
    ReportStatus.ASSIGNED,
    ReportStatus.IN_PROGRESS,
    ReportStatus.SUSPENDED,
)

# Statuses in which a report must have an assignee (all others must not).
ASSIGNEE_STATUSES = ACTIVE_STATUSES + (ReportStatus.RESOLVED,)

TERMINAL_STATUSES = (ReportStatus.REJECTED, ReportStatus.RESOLVED)


class Company(TimeStampedModel):
    """
    An external contractor.  Its maintainers can only be handed reports
    of the company's category.
    """

    name = models.CharField(
        max_length=150,
        unique=True,
        verbose_name="Company Name",
    )
    category = models.CharField(
        max_length=50,
        choices=ReportCategory.choices,
        verbose_name="Category",
    )

    class Meta:
        verbose_name = "Company"
        verbose_name_plural = "Companies"
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.get_category_display()})"


class Report(TimeStampedModel):
    """
    A problem reported by a citizen at a point inside the municipality.

    ``latitude``, ``longitude`` and ``is_anonymous`` are fixed at
    creation.  The reporter is always stored; anonymity only hides it
    from outward representations.
    """

    title = models.CharField(
        max_length=200,
        verbose_name="Title",
    )
    description = models.TextField(
        verbose_name="Description",
    )
    category = models.CharField(
        max_length=50,
        choices=ReportCategory.choices,
        verbose_name="Category",
        db_index=True,
    )
    latitude = models.FloatField(verbose_name="Latitude")
    longitude = models.FloatField(verbose_name="Longitude")
    address = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Address",
    )
    is_anonymous = models.BooleanField(
        default=False,
        verbose_name="Anonymous",
    )
    status = models.CharField(
        max_length=30,
        choices=ReportStatus.choices,
        default=ReportStatus.PENDING_APPROVAL,
        verbose_name="Current Status",
        db_index=True,
    )
    rejection_reason = models.TextField(
        blank=True,
        default="",
        verbose_name="Rejection Reason",
    )

    # ── People ──────────────────────────────────────────────────────
    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="submitted_reports",
        verbose_name="Reporter",
    )
    assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="assigned_reports",
        verbose_name="Assignee",
    )
    external_assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="external_reports",
        verbose_name="External Maintainer",
        help_text="Contractor the assignee handed the work to.",
    )

    class Meta:
        verbose_name = "Report"
        verbose_name_plural = "Reports"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["assignee", "status"], name="report_assignee_status_idx"),
            models.Index(fields=["status", "category"], name="report_status_category_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(assignee__isnull=False, status__in=ASSIGNEE_STATUSES)
                    | (Q(assignee__isnull=True) & ~Q(status__in=ASSIGNEE_STATUSES))
                ),
                name="report_assignee_matches_status",
            ),
            models.CheckConstraint(
                condition=Q(external_assignee__isnull=True) | Q(assignee__isnull=False),
                name="report_external_needs_assignee",
            ),
        ]

    def __str__(self):
        return f"Report #{self.pk} — {self.title}"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ReportStatusLog(TimeStampedModel):
    """
    Immutable audit trail of every status change of a report.

    The first row of each report has an empty ``from_status`` and records
    the submission itself.
    """

    report = models.ForeignKey(
        Report,
        on_delete=models.CASCADE,
        related_name="status_logs",
        verbose_name="Report",
    )
    from_status = models.CharField(
        max_length=30,
        choices=ReportStatus.choices,
        blank=True,
        default="",
        verbose_name="Previous Status",
    )
    to_status = models.CharField(
        max_length=30,
        choices=ReportStatus.choices,
        verbose_name="New Status",
    )
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="report_status_changes",
        verbose_name="Changed By",
    )
    message = models.TextField(
        blank=True,
        default="",
        verbose_name="Message / Rejection Reason",
    )

    class Meta:
        verbose_name = "Report Status Log"
        verbose_name_plural = "Report Status Logs"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return (
            f"Report #{self.report_id}: "
            f"{self.from_status or '∅'} → {self.to_status}"
        )


class CategoryRoleMapping(TimeStampedModel):
    """
    Which role handles reports of a given category.

    ``department`` is only needed when the role exists in more than one
    department; it narrows the mapping to a single position.
    """

    category = models.CharField(
        max_length=50,
        choices=ReportCategory.choices,
        unique=True,
        verbose_name="Category",
    )
    role = models.ForeignKey(
        "accounts.Role",
        on_delete=models.CASCADE,
        related_name="category_mappings",
        verbose_name="Responsible Role",
    )
    department = models.ForeignKey(
        "accounts.Department",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="category_mappings",
        verbose_name="Department",
    )

    class Meta:
        verbose_name = "Category Role Mapping"
        verbose_name_plural = "Category Role Mappings"
        ordering = ["category"]

    def __str__(self):
        return f"{self.get_category_display()} → {self.role}"
