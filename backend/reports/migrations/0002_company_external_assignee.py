import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

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

    dependencies = [
        ("reports", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("name", models.CharField(max_length=150, unique=True, verbose_name="Company Name")),
                ("category", models.CharField(choices=CATEGORY_CHOICES, max_length=50, verbose_name="Category")),
            ],
            options={
                "verbose_name": "Company",
                "verbose_name_plural": "Companies",
                "ordering": ["name"],
            },
        ),
        migrations.AddField(
            model_name="report",
            name="external_assignee",
            field=models.ForeignKey(
                blank=True,
                help_text="Contractor the assignee handed the work to.",
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="external_reports",
                to=settings.AUTH_USER_MODEL,
                verbose_name="External Maintainer",
            ),
        ),
        migrations.AddConstraint(
            model_name="report",
            constraint=models.CheckConstraint(
                condition=models.Q(("external_assignee__isnull", True), ("assignee__isnull", False), _connector="OR"),
                name="report_external_needs_assignee",
            ),
        ),
    ]
