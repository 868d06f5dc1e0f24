"""
Reports app URL configuration.

All routes are registered under the ``/api/reports/`` prefix.

Route Hierarchy
---------------
  /api/reports/                           → list / create
  /api/reports/{id}/                      → retrieve
  /api/reports/assigned/                  → reports assigned to the caller
  /api/reports/categories/                → category list

  ── Workflow @actions ───────────────────────────────────────────
  POST /api/reports/{id}/status/          → change status
  POST /api/reports/{id}/assign-external/ → hand to an external maintainer

  ── Sub-resource @actions ───────────────────────────────────────
  GET  /api/reports/{id}/status-log/

  ── Configuration ──────────────────────────────────────────────
  GET  /api/reports/category-roles/
  PUT  /api/reports/category-roles/{category}/
  GET  /api/reports/companies/
  POST /api/reports/companies/
  GET  /api/reports/companies/{id}/maintainers/
"""

from rest_framework.routers import SimpleRouter

from .views import CategoryRoleMappingViewSet, CompanyViewSet, ReportViewSet

router = SimpleRouter()
router.register(
    prefix=r"reports/companies",
    viewset=CompanyViewSet,
    basename="company",
)
router.register(
    prefix=r"reports/category-roles",
    viewset=CategoryRoleMappingViewSet,
    basename="category-role",
)
router.register(
    prefix=r"reports",
    viewset=ReportViewSet,
    basename="report",
)

urlpatterns = router.urls
