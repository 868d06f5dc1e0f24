import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

STATUS_CHOICES = [
    ("pending_approval", "Pending Approval"),
    ("assigned", "Assigned"),
    ("in_progress", "In Progress"),
    ("suspended", "Suspended"),
    ("rejected", "Rejected"),
    ("resolved", "Resolved"),
]

CATEGORY_CHOICES = [
    ("water_supply", "Water Supply - Drinking Water"),
    ("architectural_barriers", "Architectural Barriers"),
    ("sewer_system", "Sewer System"),
    ("public_lighting", "Public Lighting"),
    ("waste", "Waste"),
    ("road_signs_and_traffic_lights", "Road Signs and Traffic Lights"),
    ("roads_and_urban_furnishings", "Roads and Urban Furnishings"),
    ("public_green_areas_and_playgrounds", "Public Green Areas and Playgrounds"),
    ("other", "Other"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Report",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("title", models.CharField(max_length=200, verbose_name="Title")),
                ("description", models.TextField(verbose_name="Description")),
                ("category", models.CharField(choices=CATEGORY_CHOICES, db_index=True, max_length=50, verbose_name="Category")),
                ("latitude", models.FloatField(verbose_name="Latitude")),
                ("longitude", models.FloatField(verbose_name="Longitude")),
                ("address", models.CharField(blank=True, default="", max_length=255, verbose_name="Address")),
                ("is_anonymous", models.BooleanField(default=False, verbose_name="Anonymous")),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES,
                        db_index=True,
                        default="pending_approval",
                        max_length=30,
                        verbose_name="Current Status",
                    ),
                ),
                ("rejection_reason", models.TextField(blank=True, default="", verbose_name="Rejection Reason")),
                (
                    "assignee",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assigned_reports",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Assignee",
                    ),
                ),
                (
                    "reporter",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="submitted_reports",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Reporter",
                    ),
                ),
            ],
            options={
                "verbose_name": "Report",
                "verbose_name_plural": "Reports",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["assignee", "status"], name="report_assignee_status_idx"),
                    models.Index(fields=["status", "category"], name="report_status_category_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(
                                ("assignee__isnull", False),
                                ("status__in", ["assigned", "in_progress", "suspended", "resolved"]),
                            )
                            | models.Q(
                                ("assignee__isnull", True),
                                models.Q(("status__in", ["assigned", "in_progress", "suspended", "resolved"]), _negated=True),
                            )
                        ),
                        name="report_assignee_matches_status",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReportStatusLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("from_status", models.CharField(blank=True, choices=STATUS_CHOICES, default="", max_length=30, verbose_name="Previous Status")),
                ("to_status", models.CharField(choices=STATUS_CHOICES, max_length=30, verbose_name="New Status")),
                ("message", models.TextField(blank=True, default="", verbose_name="Message / Rejection Reason")),
                (
                    "changed_by",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="report_status_changes",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Changed By",
                    ),
                ),
                (
                    "report",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_logs",
                        to="reports.report",
                        verbose_name="Report",
                    ),
                ),
            ],
            options={
                "verbose_name": "Report Status Log",
                "verbose_name_plural": "Report Status Logs",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="CategoryRoleMapping",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("category", models.CharField(choices=CATEGORY_CHOICES, max_length=50, unique=True, verbose_name="Category")),
                (
                    "department",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="category_mappings",
                        to="accounts.department",
                        verbose_name="Department",
                    ),
                ),
                (
                    "role",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="category_mappings",
                        to="accounts.role",
                        verbose_name="Responsible Role",
                    ),
                ),
            ],
            options={
                "verbose_name": "Category Role Mapping",
                "verbose_name_plural": "Category Role Mappings",
                "ordering": ["category"],
            },
        ),
    ]
