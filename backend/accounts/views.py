"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.  **No business logic** resides here.

View Map
--------
- ``RegisterView``         — POST /auth/register/
- ``MeView``               — GET /me/
- ``PositionStatsView``    — GET /positions/stats/
- ``StaffViewSet``         — /staff/ (administrators)
- ``DepartmentViewSet``    — /departments/ (administrators)
"""

from __future__ import annotations

from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import ActorClassification
from .serializers import (
    DepartmentSerializer,
    MeSerializer,
    PositionReportCountSerializer,
    PositionSerializer,
    RegisterRequestSerializer,
    StaffCreateSerializer,
    StaffDetailSerializer,
    StaffFilterSerializer,
    StaffPositionsSerializer,
    StaffUpdateSerializer,
    UserDetailSerializer,
)
from .services import (
    CurrentUserService,
    DepartmentDirectory,
    RoleDirectory,
    StaffManagementService,
    UserRegistrationService,
)


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class RegisterView(generics.CreateAPIView):
    """
    POST /api/accounts/auth/register/

    Public endpoint.  Creates a new citizen account.

    Request body  → ``RegisterRequestSerializer``
    Response body → ``UserDetailSerializer`` (201 Created)
    """

    permission_classes = [AllowAny]
    serializer_class = RegisterRequestSerializer

    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRegistrationService.register_user(dict(serializer.validated_data))
        response_serializer = UserDetailSerializer(user)
        return Response(response_serializer.data, status=status.HTTP_201_CREATED)


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") View
# ═══════════════════════════════════════════════════════════════════


class MeView(APIView):
    """
    GET /api/accounts/me/ → Retrieve current user profile.

    Returns the user's profile together with the classification the
    report lifecycle will apply to them and every position they hold.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        profile = CurrentUserService.get_profile(request.user)
        return Response(MeSerializer(profile).data, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Statistics
# ═══════════════════════════════════════════════════════════════════


class PositionStatsView(APIView):
    """
    GET /api/accounts/positions/stats/

    Active report count per position.  Administrators and public
    relations officers only.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        RoleDirectory.require(
            request.user,
            ActorClassification.ADMINISTRATOR,
            ActorClassification.PUBLIC_RELATIONS_OFFICER,
        )
        rows = RoleDirectory.report_counts_by_position()
        serializer = PositionReportCountSerializer(rows, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Staff Management (Administrators)
# ═══════════════════════════════════════════════════════════════════


class StaffViewSet(viewsets.ViewSet):
    """
    /api/accounts/staff/

    GET    /                 → list staff (filters: department_id,
                               classification, is_active, search)
    POST   /                 → create a staff account
    GET    /{id}/            → retrieve
    PATCH  /{id}/            → edit profile, activation or company
    DELETE /{id}/            → delete (409 while reports are assigned)
    PUT    /{id}/positions/  → replace the positions held

    Administrator rights are checked in ``StaffManagementService``.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    def list(self, request: Request) -> Response:
        filter_serializer = StaffFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        qs = StaffManagementService.list_staff(request.user, **filter_serializer.validated_data)
        return Response(StaffDetailSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    def create(self, request: Request) -> Response:
        serializer = StaffCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = StaffManagementService.create_staff(request.user, serializer.validated_data)
        return Response(StaffDetailSerializer(user).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request: Request, pk: int = None) -> Response:
        user = StaffManagementService.get_staff(request.user, int(pk))
        return Response(StaffDetailSerializer(user).data, status=status.HTTP_200_OK)

    def partial_update(self, request: Request, pk: int = None) -> Response:
        serializer = StaffUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = StaffManagementService.update_staff(
            request.user, int(pk), serializer.validated_data,
        )
        return Response(StaffDetailSerializer(user).data, status=status.HTTP_200_OK)

    def destroy(self, request: Request, pk: int = None) -> Response:
        StaffManagementService.delete_staff(request.user, int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["put"], url_path="positions")
    def positions(self, request: Request, pk: int = None) -> Response:
        serializer = StaffPositionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = StaffManagementService.set_positions(
            request.user, int(pk), serializer.validated_data["position_ids"],
        )
        return Response(StaffDetailSerializer(user).data, status=status.HTTP_200_OK)


class DepartmentViewSet(viewsets.ViewSet):
    """
    /api/accounts/departments/

    GET /                  → every department
    GET /{id}/positions/   → staff positions of one department
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    def list(self, request: Request) -> Response:
        qs = DepartmentDirectory.list_departments(request.user)
        return Response(DepartmentSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"], url_path="positions")
    def positions(self, request: Request, pk: int = None) -> Response:
        qs = DepartmentDirectory.list_positions(request.user, int(pk))
        return Response(PositionSerializer(qs, many=True).data, status=status.HTTP_200_OK)
