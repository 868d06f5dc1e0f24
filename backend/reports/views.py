"""
Reports app ViewSets.

Architecture: Views are thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class.
    3. Serialize the result and return a DRF ``Response``.

ViewSets
--------
- ``ReportViewSet``              — report list / create / retrieve plus the
                                   status workflow and sub-resources.
- ``CategoryRoleMappingViewSet`` — category → responsible role configuration.
- ``CompanyViewSet``             — external contractors.
"""

from __future__ import annotations

import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from accounts.services import RoleDirectory

from .models import ReportCategory
from .serializers import (
    AssignExternalSerializer,
    CategoryRoleMappingSerializer,
    CategoryRoleUpsertSerializer,
    CategorySerializer,
    CompanyFilterSerializer,
    CompanySerializer,
    MaintainerSerializer,
    ReportCreateSerializer,
    ReportDetailSerializer,
    ReportFilterSerializer,
    ReportListSerializer,
    ReportStatusLogSerializer,
    StatusChangeSerializer,
)
from .services import (
    CategoryRoleService,
    CompanyService,
    ReportLifecycleService,
    ReportQueryService,
)

logger = logging.getLogger(__name__)


class ReportViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the reports app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined.  Reports are never edited or deleted through the
    API; they only move through their lifecycle.

    Permission Strategy
    -------------------
    The base permission is ``IsAuthenticated``.  Which transitions a user
    may perform is decided inside the service layer from the user's
    actor classification.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    # ── Standard actions ─────────────────────────────────────────────

    def list(self, request: Request) -> Response:
        """
        GET /api/reports/

        Reports visible to the caller, optionally filtered by ``status``
        and ``category``.
        """
        filter_serializer = ReportFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        filters = filter_serializer.validated_data

        qs = ReportQueryService.list_reports(
            request.user,
            status=filters.get("status"),
            category=filters.get("category"),
        )
        serializer = ReportListSerializer(qs, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    def create(self, request: Request) -> Response:
        """
        POST /api/reports/

        Submit a new report.  It starts in ``pending_approval``.
        """
        serializer = ReportCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = ReportLifecycleService().create_report(
            serializer.to_input(),
            reporter_id=request.user.pk,
        )
        out = ReportDetailSerializer(report, context={"request": request})
        return Response(out.data, status=status.HTTP_201_CREATED)

    def retrieve(self, request: Request, pk: int = None) -> Response:
        """
        GET /api/reports/{id}/

        Report detail including the transitions the caller may apply.
        """
        report = ReportQueryService.get_report(request.user, int(pk))
        serializer = ReportDetailSerializer(report, context={"request": request})
        return Response(serializer.data, status=status.HTTP_200_OK)

    # ── Workflow @actions ────────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: int = None) -> Response:
        """
        POST /api/reports/{id}/status/

        **Centralized state-transition endpoint.**

        Body: ``{"status": "<target>", "reason": "<required for rejected>"}``.
        Moving a report to ``assigned`` picks the assignee automatically.
        """
        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        actor = RoleDirectory.resolve_actor(request.user)
        report = ReportLifecycleService().change_status(
            int(pk),
            serializer.validated_data["status"],
            actor_id=request.user.pk,
            actor_classification=actor.classification,
            reason=serializer.validated_data.get("reason"),
        )
        out = ReportDetailSerializer(report, context={"request": request})
        return Response(out.data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="assign-external")
    def assign_external(self, request: Request, pk: int = None) -> Response:
        """
        POST /api/reports/{id}/assign-external/

        Technical staff hand an assigned report to an external maintainer
        whose company handles its category.  The internal assignee stays.
        """
        serializer = AssignExternalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        actor = RoleDirectory.resolve_actor(request.user)
        report = ReportLifecycleService().assign_external(
            int(pk),
            serializer.validated_data["maintainer_id"],
            actor_id=request.user.pk,
            actor_classification=actor.classification,
        )
        out = ReportDetailSerializer(report, context={"request": request})
        return Response(out.data, status=status.HTTP_200_OK)

    # ── Sub-resource @actions ────────────────────────────────────────

    @action(detail=True, methods=["get"], url_path="status-log")
    def status_log(self, request: Request, pk: int = None) -> Response:
        """GET /api/reports/{id}/status-log/ — oldest entry first."""
        logs = ReportQueryService.status_log(request.user, int(pk))
        serializer = ReportStatusLogSerializer(logs, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="assigned")
    def assigned(self, request: Request) -> Response:
        """GET /api/reports/assigned/ — reports assigned to the caller."""
        filter_serializer = ReportFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        qs = ReportQueryService.list_assigned(
            request.user,
            status=filter_serializer.validated_data.get("status"),
        )
        serializer = ReportListSerializer(qs, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="categories")
    def categories(self, request: Request) -> Response:
        """GET /api/reports/categories/ — every report category."""
        rows = [{"value": value, "label": label} for value, label in ReportCategory.choices]
        return Response(CategorySerializer(rows, many=True).data, status=status.HTTP_200_OK)


class CategoryRoleMappingViewSet(viewsets.ViewSet):
    """
    /api/reports/category-roles/

    GET  /                → list every mapping
    PUT  /{category}/     → create or replace the mapping (administrators)
    """

    permission_classes = [IsAuthenticated]
    lookup_field = "category"
    lookup_value_regex = r"[a-z_]+"

    def list(self, request: Request) -> Response:
        qs = CategoryRoleService.list_mappings()
        serializer = CategoryRoleMappingSerializer(qs, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    def update(self, request: Request, category: str = None) -> Response:
        serializer = CategoryRoleUpsertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        mapping = CategoryRoleService.upsert_mapping(
            request.user,
            category=category,
            role_id=serializer.validated_data["role_id"],
            department_id=serializer.validated_data.get("department_id"),
        )
        out = CategoryRoleMappingSerializer(mapping)
        return Response(out.data, status=status.HTTP_200_OK)


class CompanyViewSet(viewsets.ViewSet):
    """
    /api/reports/companies/

    GET  /                   → list companies (``?category=`` filter)
    POST /                   → register a company (administrators)
    GET  /{id}/maintainers/  → active external maintainers of a company
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    def list(self, request: Request) -> Response:
        filter_serializer = CompanyFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        qs = CompanyService.list_companies(
            category=filter_serializer.validated_data.get("category"),
        )
        return Response(CompanySerializer(qs, many=True).data, status=status.HTTP_200_OK)

    def create(self, request: Request) -> Response:
        serializer = CompanySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        company = CompanyService.create_company(
            request.user,
            name=serializer.validated_data["name"],
            category=serializer.validated_data["category"],
        )
        return Response(CompanySerializer(company).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="maintainers")
    def maintainers(self, request: Request, pk: int = None) -> Response:
        qs = CompanyService.list_maintainers(int(pk))
        return Response(MaintainerSerializer(qs, many=True).data, status=status.HTTP_200_OK)
