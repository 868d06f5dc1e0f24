"""
Reports app serializers.

Contains all Request and Response serializers for the Reports API.
Serializers handle field definitions, read/write constraints, and field-level
validation only.  **No business logic or workflow transitions live here**;
those belong in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Report read serializers
3. Report write serializers
4. Workflow action serializers
5. Sub-resource serializers (status log, category mapping)
6. Company serializers
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from accounts.services import RoleDirectory

from .models import (
    CategoryRoleMapping,
    Company,
    Report,
    ReportCategory,
    ReportStatus,
    ReportStatusLog,
)
from .services import CreateReportInput
from .transitions import allowed_targets


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportFilterSerializer(serializers.Serializer):
    """
    Validates query-parameter filters for ``GET /api/reports/``.

    Query Parameters
    ----------------
    ``status``   : str — one of ``ReportStatus`` values
    ``category`` : str — one of ``ReportCategory`` values
    """

    status = serializers.ChoiceField(
        choices=ReportStatus.choices,
        required=False,
        help_text="Filter by report status.",
    )
    category = serializers.ChoiceField(
        choices=ReportCategory.choices,
        required=False,
        help_text="Filter by report category.",
    )


# ═══════════════════════════════════════════════════════════════════
#  2. Report Read Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportListSerializer(serializers.ModelSerializer):
    """
    Outward representation of a report.

    The reporter is replaced by ``None`` on anonymous reports.
    """

    status_display = serializers.CharField(source="get_status_display", read_only=True)
    category_display = serializers.CharField(source="get_category_display", read_only=True)
    reporter = serializers.SerializerMethodField()
    assignee = serializers.PrimaryKeyRelatedField(read_only=True)
    external_assignee = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Report
        fields = [
            "id",
            "title",
            "description",
            "category",
            "category_display",
            "latitude",
            "longitude",
            "address",
            "is_anonymous",
            "status",
            "status_display",
            "rejection_reason",
            "reporter",
            "assignee",
            "external_assignee",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_reporter(self, obj: Report) -> dict[str, Any] | None:
        if obj.is_anonymous or obj.reporter is None:
            return None
        return {
            "id": obj.reporter.pk,
            "username": obj.reporter.username,
            "full_name": obj.reporter.get_full_name(),
        }


class ReportDetailSerializer(ReportListSerializer):
    """
    Report plus the statuses the requesting user may move it to.

    Expects ``request`` in the serializer context.
    """

    allowed_transitions = serializers.SerializerMethodField()

    class Meta(ReportListSerializer.Meta):
        fields = ReportListSerializer.Meta.fields + ["allowed_transitions"]
        read_only_fields = fields

    def get_allowed_transitions(self, obj: Report) -> list[str]:
        request = self.context.get("request")
        if request is None:
            return []
        actor = RoleDirectory.resolve_actor(request.user)
        return allowed_targets(obj.status, actor.classification)


# ═══════════════════════════════════════════════════════════════════
#  3. Report Write Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportCreateSerializer(serializers.Serializer):
    """
    Validates a citizen's new report.

    Whether the point lies inside the municipality is checked by the
    service, not here.
    """

    title = serializers.CharField(
        min_length=5,
        max_length=200,
        help_text="Short summary of the problem (5–200 characters).",
    )
    description = serializers.CharField(
        min_length=10,
        max_length=2000,
        help_text="Detailed description (10–2000 characters).",
    )
    category = serializers.ChoiceField(
        choices=ReportCategory.choices,
        help_text="Problem category.",
    )
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    address = serializers.CharField(
        max_length=255,
        required=False,
        allow_blank=True,
        default="",
        help_text="Optional street address shown next to the map pin.",
    )
    is_anonymous = serializers.BooleanField(
        required=False,
        default=False,
        help_text="Hide the reporter's identity from other users.",
    )

    def to_input(self) -> CreateReportInput:
        return CreateReportInput(**self.validated_data)


# ═══════════════════════════════════════════════════════════════════
#  4. Workflow Action Serializers
# ═══════════════════════════════════════════════════════════════════


class StatusChangeSerializer(serializers.Serializer):
    """
    Request body for ``POST /api/reports/{id}/status/``.

    ``status`` is a plain string; an unknown value is reported by the
    lifecycle service as an invalid argument.
    """

    status = serializers.CharField(
        max_length=30,
        help_text="Target status, e.g. 'assigned' or 'rejected'.",
    )
    reason = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=2000,
        help_text="Mandatory when rejecting a report.",
    )


class AssignExternalSerializer(serializers.Serializer):
    """Request body for ``POST /api/reports/{id}/assign-external/``."""

    maintainer_id = serializers.IntegerField(
        min_value=1,
        help_text="User id of the external maintainer taking over the work.",
    )


# ═══════════════════════════════════════════════════════════════════
#  5. Sub-resource Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportStatusLogSerializer(serializers.ModelSerializer):
    """Read-only serializer for status-log entries."""

    changed_by = serializers.SerializerMethodField()

    class Meta:
        model = ReportStatusLog
        fields = [
            "id",
            "from_status",
            "to_status",
            "changed_by",
            "message",
            "created_at",
        ]
        read_only_fields = fields

    def get_changed_by(self, obj: ReportStatusLog) -> int | None:
        # The reporter of an anonymous report stays hidden here too.
        if obj.report.is_anonymous and obj.changed_by_id == obj.report.reporter_id:
            return None
        return obj.changed_by_id


class CategorySerializer(serializers.Serializer):
    value = serializers.CharField()
    label = serializers.CharField()


class CategoryRoleMappingSerializer(serializers.ModelSerializer):
    """Read / write representation of a category → role mapping."""

    category_display = serializers.CharField(source="get_category_display", read_only=True)
    role_name = serializers.CharField(source="role.name", read_only=True)
    department_name = serializers.CharField(
        source="department.name",
        read_only=True,
        default=None,
    )

    class Meta:
        model = CategoryRoleMapping
        fields = [
            "id",
            "category",
            "category_display",
            "role",
            "role_name",
            "department",
            "department_name",
            "updated_at",
        ]
        read_only_fields = ["id", "category_display", "role_name", "department_name", "updated_at"]


class CategoryRoleUpsertSerializer(serializers.Serializer):
    """Request body for ``PUT /api/reports/category-roles/{category}/``."""

    role_id = serializers.IntegerField(min_value=1)
    department_id = serializers.IntegerField(
        min_value=1,
        required=False,
        allow_null=True,
        default=None,
    )


# ═══════════════════════════════════════════════════════════════════
#  6. Company Serializers
# ═══════════════════════════════════════════════════════════════════


class CompanySerializer(serializers.ModelSerializer):

    category_display = serializers.CharField(source="get_category_display", read_only=True)

    class Meta:
        model = Company
        fields = ["id", "name", "category", "category_display", "created_at"]
        read_only_fields = ["id", "category_display", "created_at"]


class CompanyFilterSerializer(serializers.Serializer):
    category = serializers.ChoiceField(
        choices=ReportCategory.choices,
        required=False,
        help_text="Only companies handling this category.",
    )


class MaintainerSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    username = serializers.CharField(read_only=True)
    full_name = serializers.CharField(source="get_full_name", read_only=True)
