"""
Integration tests for registration, login and the current-user profile.

Endpoints under test:
    POST /api/accounts/auth/register/      (accounts:register)
    POST /api/accounts/auth/login/         (accounts:login)
    POST /api/accounts/auth/token/refresh/ (accounts:token-refresh)
    GET  /api/accounts/me/                 (accounts:me)
    GET  /api/accounts/positions/stats/    (accounts:position-stats)
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import ActorClassification, Department, DepartmentRole, Role
from reports.models import Report, ReportCategory, ReportStatus

User = get_user_model()

PASSWORD = "Str0ng!Pass"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _registration_payload(**overrides) -> dict:
    data = {
        "username": "mario",
        "password": PASSWORD,
        "password_confirm": PASSWORD,
        "email": "mario@civic.test",
        "first_name": "Mario",
        "last_name": "Rossi",
    }
    data.update(overrides)
    return data


def _position(department: str, role: str, classification: str) -> DepartmentRole:
    dept, _ = Department.objects.get_or_create(name=department)
    role_obj, _ = Role.objects.get_or_create(name=role, defaults={"classification": classification})
    position, _ = DepartmentRole.objects.get_or_create(department=dept, role=role_obj)
    return position


class TestRegistration(TestCase):

    def setUp(self) -> None:
        self.client = APIClient()
        self.url = reverse("accounts:register")

    def test_citizen_registers(self):
        response = self.client.post(self.url, _registration_payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertNotIn("password", response.data)
        user = User.objects.get(username="mario")
        self.assertTrue(user.check_password(PASSWORD))
        self.assertFalse(user.positions.exists())

    def test_password_mismatch(self):
        response = self.client.post(
            self.url,
            _registration_payload(password_confirm="Other!Pass1"),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("password_confirm", response.data)

    def test_missing_email(self):
        payload = _registration_payload()
        payload.pop("email")
        response = self.client.post(self.url, payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_email_case_insensitive(self):
        User.objects.create_user(username="existing", password=PASSWORD, email="Mario@Civic.test")

        response = self.client.post(self.url, _registration_payload(), format="json")

        # The unique validator on the model catches exact matches; the
        # service catches the case-insensitive ones.
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn("email", response.data["detail"])


class TestLoginAndMe(TestCase):

    @classmethod
    def setUpTestData(cls) -> None:
        cls.position = _position(
            "Public Lighting Department", "Electrical staff member",
            ActorClassification.TECHNICAL_STAFF,
        )
        cls.citizen = User.objects.create_user(
            username="citizen", password=PASSWORD, email="citizen@civic.test",
        )
        cls.staff = User.objects.create_user(
            username="staff", password=PASSWORD, email="staff@civic.test",
        )
        cls.staff.positions.add(cls.position)

    def setUp(self) -> None:
        self.client = APIClient()

    def _login(self, username: str, password: str = PASSWORD):
        return self.client.post(
            reverse("accounts:login"),
            {"username": username, "password": password},
            format="json",
        )

    def test_login_returns_token_pair(self):
        response = self._login("citizen")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)

    def test_wrong_password(self):
        response = self._login("citizen", "wrong-password")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh(self):
        refresh = self._login("citizen").data["refresh"]
        response = self.client.post(
            reverse("accounts:token-refresh"), {"refresh": refresh}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)

    def test_me_requires_authentication(self):
        response = self.client.get(reverse("accounts:me"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_for_citizen(self):
        token = self._login("citizen").data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        response = self.client.get(reverse("accounts:me"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["user"]["username"], "citizen")
        self.assertEqual(response.data["classification"], ActorClassification.CITIZEN)
        self.assertIsNone(response.data["role_name"])
        self.assertEqual(response.data["positions"], [])

    def test_me_for_staff_member(self):
        token = self._login("staff").data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        response = self.client.get(reverse("accounts:me"))

        self.assertEqual(response.data["classification"], ActorClassification.TECHNICAL_STAFF)
        self.assertEqual(response.data["role_name"], "Electrical staff member")
        self.assertEqual(response.data["department_id"], self.position.department_id)
        self.assertEqual(
            response.data["positions"],
            [{
                "id": self.position.pk,
                "department": "Public Lighting Department",
                "role": "Electrical staff member",
                "classification": ActorClassification.TECHNICAL_STAFF,
            }],
        )


class TestPositionStats(TestCase):

    @classmethod
    def setUpTestData(cls) -> None:
        cls.pro_position = _position(
            "Organization", "Municipal Public Relations Officer",
            ActorClassification.PUBLIC_RELATIONS_OFFICER,
        )
        cls.lighting = _position(
            "Public Lighting Department", "Electrical staff member",
            ActorClassification.TECHNICAL_STAFF,
        )
        cls.pro = User.objects.create_user(username="pro", password=PASSWORD, email="pro@civic.test")
        cls.pro.positions.add(cls.pro_position)
        cls.tech = User.objects.create_user(username="tech", password=PASSWORD, email="tech@civic.test")
        cls.tech.positions.add(cls.lighting)
        cls.citizen = User.objects.create_user(
            username="citizen", password=PASSWORD, email="citizen@civic.test",
        )

        for report_status in (ReportStatus.ASSIGNED, ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED):
            Report.objects.create(
                title="Lamp",
                description="Street lamp flickering.",
                category=ReportCategory.PUBLIC_LIGHTING,
                latitude=45.07,
                longitude=7.68,
                status=report_status,
                assignee=cls.tech,
            )

    def setUp(self) -> None:
        self.client = APIClient()

    def test_pro_sees_active_counts(self):
        self.client.force_authenticate(self.pro)

        response = self.client.get(reverse("accounts:position-stats"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        counts = {row["role"]: row["report_count"] for row in response.data}
        self.assertEqual(counts["Electrical staff member"], 2)
        self.assertEqual(counts["Municipal Public Relations Officer"], 0)

    def test_citizen_is_forbidden(self):
        self.client.force_authenticate(self.citizen)
        response = self.client.get(reverse("accounts:position-stats"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
