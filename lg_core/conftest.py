# lg_core/conftest.py
import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from lg_core.common.capabilities import reset_capabilities


def make_user(username: str, *, email: str | None = None, password: str = "testpass"):
    User = get_user_model()
    return User.objects.create_user(
        username=username,
        email=email if email is not None else f"{username}@example.com",
        password=password,
        is_active=True,
    )


def make_member(clinic, user, *, role: str = "staff", permissions: dict | None = None, status: str = "accepted"):
    """
    Accepted membership + clinic-linked profile with access, as if an invite
    had been accepted.
    """
    from lg_core.iam.models import ClinicMembership, DoctorProfile

    profile, _ = DoctorProfile.objects.get_or_create(
        user=user,
        clinic=clinic,
        defaults={"email": user.email, "access_control": True, "is_staff": role == "staff"},
    )
    return ClinicMembership.objects.create(
        clinic=clinic,
        email=user.email,
        role=role,
        permissions=permissions or {},
        status=status,
        user=user,
        doctor_profile=profile,
        accepted_at=timezone.now() if status == "accepted" else None,
    )


@pytest.fixture(autouse=True)
def _fresh_capabilities():
    reset_capabilities()
    yield
    reset_capabilities()


@pytest.fixture
def user(db):
    return make_user("owner", email="owner@example.com")


@pytest.fixture
def other_user(db):
    return make_user("outsider", email="outsider@example.com")


@pytest.fixture
def clinic(user):
    """
    Created through ClinicService so the owner membership and the owner's
    profile exist exactly as in production.
    """
    from lg_core.clinics.services import ClinicService

    return ClinicService.create(name="Test Clinic", owner=user, city="Austin")


@pytest.fixture
def owner_membership(clinic, user):
    from lg_core.iam.models import ClinicMembership

    return ClinicMembership.objects.get(clinic=clinic, user=user)


@pytest.fixture
def doctor_profile(clinic, user):
    from lg_core.iam.models import DoctorProfile

    return DoctorProfile.objects.get(user=user, clinic=clinic)


@pytest.fixture
def staff_user(db):
    return make_user("staffer", email="staff@example.com")


@pytest.fixture
def staff_membership(clinic, staff_user):
    return make_member(clinic, staff_user, permissions={"leads": True, "content": True, "team": False})


@pytest.fixture
def manager_user(db):
    return make_user("manager", email="manager@example.com")


@pytest.fixture
def manager_membership(clinic, manager_user):
    return make_member(clinic, manager_user, permissions={"leads": True, "content": True, "team": True})


@pytest.fixture
def api_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def anon_client():
    return APIClient()
