"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_user`` factory fixture for creating test users.
  - ``make_position`` factory fixture for department/role positions.
  - ``auth_header`` fixture for authenticated requests (JWT).
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def make_position(db):
    """
    Factory fixture returning a ``DepartmentRole`` (a position).

    Usage::

        def test_something(make_position):
            pro = make_position("PRO", "public_relations_officer")
            roads = make_position("Road staff", "technical_staff",
                                  department="Public Works")
    """
    from accounts.models import Department, DepartmentRole, Role

    def _factory(
        role_name: str,
        classification: str,
        *,
        department: str = "Test Department",
    ) -> DepartmentRole:
        dept, _ = Department.objects.get_or_create(name=department)
        role, _ = Role.objects.get_or_create(
            name=role_name,
            defaults={"classification": classification},
        )
        position, _ = DepartmentRole.objects.get_or_create(department=dept, role=role)
        return position

    return _factory


@pytest.fixture()
def create_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        def test_something(create_user, make_position):
            citizen = create_user(username="alice")
            staff = create_user(positions=[make_position("Roads", "technical_staff")])
    """
    from accounts.models import User

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        positions=(),
        is_active: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"

        user = User.objects.create_user(
            username=username,
            password=password,
            email=email,
            is_active=is_active,
            **kwargs,
        )
        if positions:
            user.positions.set(positions)
        return user

    return _factory


@pytest.fixture()
def auth_header(create_user):
    """
    Returns a helper function that creates a user and returns an
    ``Authorization`` header dict with a valid JWT access token.

    Usage::

        def test_protected(auth_header, api_client):
            header = auth_header(username="alice")
            api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
            resp = api_client.get("/api/accounts/me/")
            assert resp.status_code == 200

    The returned dict looks like::

        {"Authorization": "Bearer eyJ..."}
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _make(*, username: str | None = None, positions=(), **user_kwargs) -> dict[str, str]:
        user = create_user(username=username, positions=positions, **user_kwargs)
        token = AccessToken.for_user(user)
        return {"Authorization": f"Bearer {token}"}

    return _make
