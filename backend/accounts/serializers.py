"""
Accounts app serializers.

Contains all Request and Response serializers for the accounts API.
Serializers handle field definitions, read/write constraints, and
basic validation.  **No business logic** lives here — all domain
rules are delegated to ``services.py``.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import ActorClassification, Department, DepartmentRole

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class RegisterRequestSerializer(serializers.ModelSerializer):
    """
    Validates citizen registration data.

    Required fields: username, password, email, first_name, last_name.
    """

    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Minimum 8 characters.",
    )
    password_confirm = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="Must match 'password'.",
    )

    class Meta:
        model = User
        fields = [
            "username",
            "password",
            "password_confirm",
            "email",
            "first_name",
            "last_name",
        ]
        extra_kwargs = {
            "email": {"required": True},
            "first_name": {"required": True},
            "last_name": {"required": True},
        }

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if attrs.get("password") != attrs.get("password_confirm"):
            raise serializers.ValidationError(
                {"password_confirm": "Passwords do not match."}
            )
        return attrs


# ═══════════════════════════════════════════════════════════════════
#  Profile Serializers
# ═══════════════════════════════════════════════════════════════════


class PositionSerializer(serializers.ModelSerializer):
    """Compact representation of a department/role position."""

    department = serializers.CharField(source="department.name", read_only=True)
    role = serializers.CharField(source="role.name", read_only=True)
    classification = serializers.CharField(
        source="role.classification",
        read_only=True,
    )

    class Meta:
        model = DepartmentRole
        fields = ["id", "department", "role", "classification"]


class UserDetailSerializer(serializers.ModelSerializer):
    """Public profile fields of a user."""

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "is_active",
            "date_joined",
        ]
        read_only_fields = fields


class MeSerializer(serializers.Serializer):
    """
    Response body for ``GET /me/``.

    Wraps the user, the resolved actor profile and every position the
    user holds.
    """

    user = UserDetailSerializer(read_only=True)
    classification = serializers.CharField(
        source="actor.classification",
        read_only=True,
        help_text="Actor classification used for report transitions.",
    )
    role_name = serializers.CharField(
        source="actor.role_name",
        read_only=True,
        allow_null=True,
    )
    department_id = serializers.IntegerField(
        source="actor.department_id",
        read_only=True,
        allow_null=True,
    )
    positions = PositionSerializer(many=True, read_only=True)


class PositionReportCountSerializer(serializers.Serializer):
    """One row of ``RoleDirectory.report_counts_by_position``."""

    position_id = serializers.IntegerField()
    department = serializers.CharField()
    role = serializers.CharField()
    report_count = serializers.IntegerField()


# ═══════════════════════════════════════════════════════════════════
#  Staff Management Serializers
# ═══════════════════════════════════════════════════════════════════


class StaffDetailSerializer(UserDetailSerializer):
    """A staff account with its positions and, for contractors, company."""

    positions = PositionSerializer(many=True, read_only=True)
    company = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta(UserDetailSerializer.Meta):
        fields = UserDetailSerializer.Meta.fields + ["positions", "company"]
        read_only_fields = fields


class StaffFilterSerializer(serializers.Serializer):
    """Query parameters for ``GET /staff/``."""

    department_id = serializers.IntegerField(min_value=1, required=False)
    classification = serializers.ChoiceField(
        choices=ActorClassification.choices,
        required=False,
    )
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)


class StaffCreateSerializer(serializers.Serializer):
    """
    Request body for ``POST /staff/``.

    Uniqueness of username and email is checked by the service, which
    answers ``409 Conflict``.
    """

    username = serializers.CharField(max_length=150)
    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Minimum 8 characters.",
    )
    email = serializers.EmailField()
    first_name = serializers.CharField(max_length=150)
    last_name = serializers.CharField(max_length=150)
    position_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
        help_text="Positions (department + role) the new staff member holds.",
    )
    company_id = serializers.IntegerField(
        min_value=1,
        required=False,
        allow_null=True,
        default=None,
        help_text="Required for external maintainers.",
    )


class StaffUpdateSerializer(serializers.Serializer):
    """Request body for ``PATCH /staff/{id}/``.  Every field is optional."""

    email = serializers.EmailField(required=False)
    first_name = serializers.CharField(max_length=150, required=False)
    last_name = serializers.CharField(max_length=150, required=False)
    is_active = serializers.BooleanField(required=False)
    company_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class StaffPositionsSerializer(serializers.Serializer):
    """Request body for ``PUT /staff/{id}/positions/``."""

    position_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
    )


class DepartmentSerializer(serializers.ModelSerializer):

    position_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Department
        fields = ["id", "name", "description", "position_count"]
        read_only_fields = fields
