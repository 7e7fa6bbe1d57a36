# lg_core/clinics/tests/test_clinic_service.py
import pytest
from rest_framework.exceptions import PermissionDenied, ValidationError

from lg_core.audit.models import AuditEvent
from lg_core.clinics.services import ClinicService, PhysicianService
from lg_core.conftest import make_user
from lg_core.iam.models import ClinicMembership, DoctorProfile
from lg_core.iam.selectors import clinic_member_view
from lg_core.iam.services.access import AccessGate

pytestmark = pytest.mark.django_db


def test_create_makes_owner_membership_and_profile(clinic, user):
    m = ClinicMembership.objects.get(clinic=clinic, user=user)

    assert m.role == "owner"
    assert m.status == "accepted"
    assert m.permissions == {"leads": True, "content": True, "payments": True, "team": True}
    assert m.doctor_profile.clinic_id == clinic.id
    assert AuditEvent.objects.filter(event_code="clinic.created", entity_id=str(clinic.id)).exists()


def test_create_links_existing_unlinked_profile(db):
    u = make_user("solo", email="solo@example.com")
    profile, _ = AccessGate.provision(user=u)

    c = ClinicService.create(name="Solo Clinic", owner=u)

    profile.refresh_from_db()
    assert profile.clinic_id == c.id
    assert profile.clinic_name == "Solo Clinic"
    assert DoctorProfile.objects.filter(user=u).count() == 1


def test_create_rejects_blank_name_and_unknown_fields(user):
    with pytest.raises(ValidationError):
        ClinicService.create(name="  ", owner=user)
    with pytest.raises(ValidationError):
        ClinicService.create(name="X", owner=user, stripe_key="nope")


def test_update_branding_is_owner_only(clinic, user, manager_user, manager_membership):
    updated = ClinicService.update_branding(
        clinic_id=clinic.id, actor=user, fields={"primary_color": "#112233", "tagline": "Breathe easy"}
    )
    assert updated.primary_color == "#112233"

    ev = AuditEvent.objects.get(event_code="clinic.updated")
    assert ev.metadata["after"]["tagline"] == "Breathe easy"

    with pytest.raises(PermissionDenied):
        ClinicService.update_branding(clinic_id=clinic.id, actor=manager_user, fields={"tagline": "x"})


def test_physicians_need_content_permission(clinic, user, staff_user, staff_membership):
    p = PhysicianService.create(
        clinic_id=clinic.id, actor=staff_user, first_name="Gregory", last_name="House", degree_type="MD"
    )
    assert p.full_name

    limited = make_user("limited", email="limited@example.com")
    from lg_core.conftest import make_member

    make_member(clinic, limited, permissions={"leads": True})
    with pytest.raises(PermissionDenied):
        PhysicianService.update(clinic_id=clinic.id, actor=limited, physician_id=p.id, fields={"bio": "x"})

    p = PhysicianService.deactivate(clinic_id=clinic.id, actor=user, physician_id=p.id)
    assert p.is_active is False


def test_physician_rejects_unknown_degree(clinic, user):
    with pytest.raises(ValidationError):
        PhysicianService.create(clinic_id=clinic.id, actor=user, first_name="A", last_name="B", degree_type="PhD")


def test_member_view_lists_memberships_then_physicians(clinic, user, staff_membership):
    PhysicianService.create(clinic_id=clinic.id, actor=user, first_name="Ada", last_name="Lovelace")
    other = ClinicService.create(name="Elsewhere", owner=make_user("boss", email="boss@example.com"))
    PhysicianService.create(
        clinic_id=other.id,
        actor=other.created_by,
        first_name="Not",
        last_name="Ours",
    )

    items = clinic_member_view(clinic_id=clinic.id)

    assert [i["kind"] for i in items] == ["membership", "membership", "physician"]
    assert items[-1]["role"] == "physician"
    assert {i["clinic_id"] for i in items} == {str(clinic.id)}
