"""
Accounts app URL configuration.

All routes are namespaced under ``accounts`` and designed to be included
in the project-level ``urls.py`` as::

    path('api/accounts/', include('accounts.urls')),

Endpoint Map
------------
Authentication
    POST   /auth/register/              → RegisterView
    POST   /auth/login/                 → TokenObtainPairView (SimpleJWT)
    POST   /auth/token/refresh/         → TokenRefreshView (SimpleJWT)

Current User Profile ("Me")
    GET    /me/                         → MeView

Statistics
    GET    /positions/stats/            → PositionStatsView

Staff Management (Administrators)
    GET    /staff/                      → StaffViewSet.list
    POST   /staff/                      → StaffViewSet.create
    GET    /staff/{id}/                 → StaffViewSet.retrieve
    PATCH  /staff/{id}/                 → StaffViewSet.partial_update
    DELETE /staff/{id}/                 → StaffViewSet.destroy
    PUT    /staff/{id}/positions/       → StaffViewSet.positions

Organisation (Administrators)
    GET    /departments/                → DepartmentViewSet.list
    GET    /departments/{id}/positions/ → DepartmentViewSet.positions
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .views import (
    DepartmentViewSet,
    MeView,
    PositionStatsView,
    RegisterView,
    StaffViewSet,
)

app_name = "accounts"

router = DefaultRouter()
router.register(r"staff", StaffViewSet, basename="staff")
router.register(r"departments", DepartmentViewSet, basename="department")

urlpatterns = [
    # ── Authentication ───────────────────────────────────────────────
    path("auth/register/", RegisterView.as_view(), name="register"),
    path("auth/login/", TokenObtainPairView.as_view(), name="login"),
    path(
        "auth/token/refresh/",
        TokenRefreshView.as_view(),
        name="token-refresh",
    ),

    # ── Current User (Me) ───────────────────────────────────────────
    path("me/", MeView.as_view(), name="me"),

    # ── Statistics ───────────────────────────────────────────────────
    path("positions/stats/", PositionStatsView.as_view(), name="position-stats"),

    # ── Router-registered viewsets (staff/, departments/) ───────────
    path("", include(router.urls)),
]
