"""
Management command: seed_municipality
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Seeds the database with the municipal organisation chart
(**Departments**, **Roles** with their actor classification, and the
**positions** pairing them) and the default **category → role** table
used to route approved reports.

The command is **idempotent**: safe to run multiple times.  Existing
departments and roles are kept; descriptions and classifications are
updated to match the tables below, and every category mapping is reset
to its default.

Usage::

    python manage.py seed_municipality

Prerequisites::

    python manage.py migrate
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from accounts.models import ActorClassification, Department, DepartmentRole, Role
from reports.models import CategoryRoleMapping, ReportCategory

# ────────────────────────────────────────────────────────────────────
# Organisation chart
# ────────────────────────────────────────────────────────────────────
# Key:   department name
# Value: list of (role_name, classification, description)

DEPARTMENT_ROLES_MAP: dict[str, list[tuple[str, str, str]]] = {
    "Organization": [
        (
            "Municipal Public Relations Officer",
            ActorClassification.PUBLIC_RELATIONS_OFFICER,
            "Reviews incoming reports and approves or rejects them.",
        ),
        (
            "Municipal Administrator",
            ActorClassification.ADMINISTRATOR,
            "Manages staff accounts and category routing.",
        ),
    ],
    "Water and Sewer Services Department": [
        (
            "Water Network staff member",
            ActorClassification.TECHNICAL_STAFF,
            "Handles drinking-water supply problems.",
        ),
        (
            "Sewer System staff member",
            ActorClassification.TECHNICAL_STAFF,
            "Handles sewer and drainage problems.",
        ),
    ],
    "Public Infrastructure and Accessibility Department": [
        (
            "Road Maintenance staff member",
            ActorClassification.TECHNICAL_STAFF,
            "Handles roads and urban furnishings.",
        ),
        (
            "Accessibility staff member",
            ActorClassification.TECHNICAL_STAFF,
            "Handles architectural barriers.",
        ),
    ],
    "Public Lighting Department": [
        (
            "Electrical staff member",
            ActorClassification.TECHNICAL_STAFF,
            "Handles street lighting faults.",
        ),
    ],
    "Waste Management Department": [
        (
            "Recycling Program staff member",
            ActorClassification.TECHNICAL_STAFF,
            "Handles waste collection and illegal dumping.",
        ),
    ],
    "Mobility and Traffic Management Department": [
        (
            "Traffic management staff member",
            ActorClassification.TECHNICAL_STAFF,
            "Handles road signs and traffic lights.",
        ),
    ],
    "Parks, Green Areas and Recreation Department": [
        (
            "Parks Maintenance staff member",
            ActorClassification.TECHNICAL_STAFF,
            "Handles public green areas and playgrounds.",
        ),
    ],
    "General Services Department": [
        (
            "Support Officer",
            ActorClassification.TECHNICAL_STAFF,
            "Handles reports that fit no other category.",
        ),
    ],
    "External Service Providers": [
        (
            "External Maintainer",
            ActorClassification.EXTERNAL_MAINTAINER,
            "Contractor that may take and resolve reports directly.",
        ),
    ],
}

# ────────────────────────────────────────────────────────────────────
# Category → responsible role
# ────────────────────────────────────────────────────────────────────

CATEGORY_ROLE_MAP: dict[str, str] = {
    ReportCategory.WATER_SUPPLY: "Water Network staff member",
    ReportCategory.ARCHITECTURAL_BARRIERS: "Accessibility staff member",
    ReportCategory.SEWER_SYSTEM: "Sewer System staff member",
    ReportCategory.PUBLIC_LIGHTING: "Electrical staff member",
    ReportCategory.WASTE: "Recycling Program staff member",
    ReportCategory.ROAD_SIGNS_AND_TRAFFIC_LIGHTS: "Traffic management staff member",
    ReportCategory.ROADS_AND_URBAN_FURNISHINGS: "Road Maintenance staff member",
    ReportCategory.PUBLIC_GREEN_AREAS_AND_PLAYGROUNDS: "Parks Maintenance staff member",
    ReportCategory.OTHER: "Support Officer",
}


class Command(BaseCommand):
    help = (
        "Seeds departments, roles, positions and the default category → "
        "role routing table.  Safe to run multiple times (idempotent)."
    )

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n══════════════════════════════════════════"
            "\n  Municipality Setup — Seeding Organisation"
            "\n══════════════════════════════════════════\n"
        ))

        roles_by_name: dict[str, Role] = {}
        positions_created = 0

        for department_name, roles in DEPARTMENT_ROLES_MAP.items():
            # ── 1. Department ───────────────────────────────────────
            department, _ = Department.objects.get_or_create(name=department_name)

            for role_name, classification, description in roles:
                # ── 2. Role (classification kept in sync) ───────────
                role, created = Role.objects.get_or_create(
                    name=role_name,
                    defaults={
                        "classification": classification,
                        "description": description,
                    },
                )
                if not created and (
                    role.classification != classification
                    or role.description != description
                ):
                    role.classification = classification
                    role.description = description
                    role.save(update_fields=["classification", "description"])
                roles_by_name[role_name] = role

                # ── 3. Position ─────────────────────────────────────
                _, position_created = DepartmentRole.objects.get_or_create(
                    department=department,
                    role=role,
                )
                positions_created += int(position_created)

                action = "Created" if created else "Updated"
                self.stdout.write(self.style.SUCCESS(
                    f"  ✔  {action} role: {role_name:<36s} "
                    f"@ {department_name}"
                ))

        # ── 4. Category routing ─────────────────────────────────────
        for category, role_name in CATEGORY_ROLE_MAP.items():
            role = roles_by_name.get(role_name)
            if role is None:
                self.stdout.write(self.style.WARNING(
                    f"  ⚠  Role '{role_name}' not defined — "
                    f"category '{category}' left unmapped."
                ))
                continue
            CategoryRoleMapping.objects.update_or_create(
                category=category,
                defaults={"role": role, "department": None},
            )

        # ── Summary ─────────────────────────────────────────────────
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n──────────────────────────────────────────"
        ))
        self.stdout.write(self.style.SUCCESS(
            f"  Done!  {len(DEPARTMENT_ROLES_MAP)} department(s), "
            f"{len(roles_by_name)} role(s), {positions_created} new position(s), "
            f"{len(CATEGORY_ROLE_MAP)} category mapping(s).\n"
        ))
