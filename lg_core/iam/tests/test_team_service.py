# lg_core/iam/tests/test_team_service.py
from datetime import timedelta

import pytest
from django.db import connection, connections
from django.test.utils import CaptureQueriesContext
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from lg_core.audit.models import AuditEvent
from lg_core.common.api.exceptions import ConflictError, NotFoundError, UnsupportedOperationError
from lg_core.conftest import make_member, make_user
from lg_core.iam.models import ClinicMembership, DoctorProfile, MembershipStatus
from lg_core.iam.services.access import AccessGate
from lg_core.iam.services.team import TeamService

pytestmark = pytest.mark.django_db


def _invite(clinic, actor, email="new@example.com", **kw):
    return TeamService.invite(clinic_id=clinic.id, actor=actor, email=email, **kw)


# ----- invite -----

def test_owner_invite_creates_pending_membership_with_default_permissions(clinic, user):
    m = _invite(clinic, user, email="  New@Example.com ", first_name="Ann")

    assert m.status == MembershipStatus.PENDING
    assert m.email == "new@example.com"
    assert m.role == "staff"
    assert m.permissions == {"leads": True, "content": True, "payments": False, "team": False}
    assert m.invitation_token
    assert m.token_expires_at > timezone.now()
    assert AuditEvent.objects.filter(event_code="membership.invited", entity_id=str(m.id)).exists()


def test_staff_with_team_can_invite_but_not_grant_team(clinic, manager_user, manager_membership):
    m = _invite(clinic, manager_user)
    assert m.status == MembershipStatus.PENDING

    with pytest.raises(PermissionDenied):
        _invite(clinic, manager_user, email="other@example.com", permissions={"team": True})


def test_staff_without_team_cannot_invite(clinic, staff_user, staff_membership):
    with pytest.raises(PermissionDenied):
        _invite(clinic, staff_user)


def test_non_member_cannot_invite(clinic, other_user):
    with pytest.raises(PermissionDenied):
        _invite(clinic, other_user)


def test_invite_rejects_bad_email_and_owner_role(clinic, user):
    with pytest.raises(ValidationError):
        _invite(clinic, user, email="not-an-email")
    with pytest.raises(ValidationError):
        _invite(clinic, user, role="owner")


def test_duplicate_live_invite_is_rejected(clinic, user):
    _invite(clinic, user)
    with pytest.raises(ValidationError):
        _invite(clinic, user, email="NEW@example.com")


def test_expired_pending_invite_is_reissued_in_place(clinic, user):
    first = _invite(clinic, user)
    old_token = first.invitation_token
    ClinicMembership.objects.filter(id=first.id).update(token_expires_at=timezone.now() - timedelta(days=1))

    again = _invite(clinic, user, role="physician")

    assert again.id == first.id
    assert again.role == "physician"
    assert again.invitation_token != old_token
    assert again.token_expires_at > timezone.now()
    assert ClinicMembership.objects.filter(clinic=clinic, email="new@example.com").count() == 1


def test_revoked_membership_does_not_block_new_invite(clinic, user):
    first = _invite(clinic, user)
    TeamService.revoke_invite(clinic_id=clinic.id, actor=user, membership_id=first.id)

    second = _invite(clinic, user)

    assert second.id != first.id
    assert second.status == MembershipStatus.PENDING


# ----- accept -----

def test_accept_links_profile_and_grants_access(clinic, user):
    m = _invite(clinic, user, email="joiner@example.com", first_name="Jo", last_name="Iner")
    joiner = make_user("joiner", email="joiner@example.com")

    accepted = TeamService.accept_invite(token=m.invitation_token, user=joiner)

    assert accepted.status == MembershipStatus.ACCEPTED
    assert accepted.invitation_token is None
    assert accepted.user_id == joiner.id
    profile = DoctorProfile.objects.get(user=joiner, clinic=clinic)
    assert profile.access_control is True
    assert profile.is_staff is True
    assert profile.is_manager is False
    assert accepted.doctor_profile_id == profile.id
    assert profile.access_changed_by_id == joiner.id
    assert profile.access_changed_at is not None
    assert AccessGate.check(user=joiner).granted


def test_second_accept_of_same_token_conflicts(clinic, user):
    m = _invite(clinic, user, email="joiner@example.com")
    token = m.invitation_token
    joiner = make_user("joiner", email="joiner@example.com")
    TeamService.accept_invite(token=token, user=joiner)

    with pytest.raises(ConflictError):
        TeamService.accept_invite(token=token, user=joiner)

    assert ClinicMembership.objects.filter(clinic=clinic, email="joiner@example.com").count() == 1
    assert DoctorProfile.objects.filter(user=joiner, clinic=clinic).count() == 1


def test_accept_rejects_expired_token(clinic, user):
    m = _invite(clinic, user, email="joiner@example.com")
    ClinicMembership.objects.filter(id=m.id).update(token_expires_at=timezone.now() - timedelta(minutes=1))
    joiner = make_user("joiner", email="joiner@example.com")

    with pytest.raises(ValidationError):
        TeamService.accept_invite(token=m.invitation_token, user=joiner)


def test_accept_rejects_other_email(clinic, user, other_user):
    m = _invite(clinic, user, email="joiner@example.com")
    with pytest.raises(PermissionDenied):
        TeamService.accept_invite(token=m.invitation_token, user=other_user)


def test_accept_with_team_permission_marks_profile_manager(clinic, user):
    m = _invite(clinic, user, email="lead@example.com", permissions={"team": True})
    lead = make_user("lead", email="lead@example.com")

    TeamService.accept_invite(token=m.invitation_token, user=lead)

    assert DoctorProfile.objects.get(user=lead, clinic=clinic).is_manager is True


# ----- role / permissions / remove -----

def test_owner_updates_staff_role_and_noop_is_idempotent(clinic, user, staff_membership):
    m = TeamService.update_role(
        clinic_id=clinic.id, actor=user, membership_id=staff_membership.id, role="physician"
    )
    assert m.role == "physician"
    assert DoctorProfile.objects.get(user=staff_membership.user, clinic=clinic).is_staff is False

    # physician rows are no longer manageable through generic actions
    with pytest.raises(PermissionDenied):
        TeamService.update_role(clinic_id=clinic.id, actor=user, membership_id=m.id, role="staff")


def test_update_role_same_value_writes_no_audit(clinic, user, staff_membership):
    before = AuditEvent.objects.count()
    TeamService.update_role(clinic_id=clinic.id, actor=user, membership_id=staff_membership.id, role="staff")
    assert AuditEvent.objects.count() == before


def test_owner_membership_cannot_be_modified(clinic, user, owner_membership):
    with pytest.raises(PermissionDenied):
        TeamService.update_role(
            clinic_id=clinic.id, actor=user, membership_id=owner_membership.id, role="staff"
        )
    with pytest.raises(PermissionDenied):
        TeamService.remove(clinic_id=clinic.id, actor=user, membership_id=owner_membership.id)


def test_staff_with_team_cannot_change_roles(clinic, manager_user, manager_membership, staff_membership):
    with pytest.raises(PermissionDenied):
        TeamService.update_role(
            clinic_id=clinic.id, actor=manager_user, membership_id=staff_membership.id, role="physician"
        )


def test_unknown_membership_is_not_found(clinic, user):
    import uuid

    with pytest.raises(NotFoundError):
        TeamService.remove(clinic_id=clinic.id, actor=user, membership_id=uuid.uuid4())


def test_update_permissions_merges_and_syncs_manager_flag(clinic, user, staff_membership):
    m = TeamService.update_permissions(
        clinic_id=clinic.id, actor=user, membership_id=staff_membership.id, permissions={"team": True}
    )

    assert m.permissions == {"leads": True, "content": True, "payments": False, "team": True}
    assert DoctorProfile.objects.get(user=staff_membership.user, clinic=clinic).is_manager is True
    ev = AuditEvent.objects.get(event_code="membership.permissions_updated")
    assert ev.metadata["before"]["permissions"]["team"] is False
    assert ev.metadata["after"]["permissions"]["team"] is True


def test_remove_revokes_membership_and_portal_access(clinic, user, staff_user, staff_membership):
    assert AccessGate.check(user=staff_user).granted

    m = TeamService.remove(clinic_id=clinic.id, actor=user, membership_id=staff_membership.id)

    assert m.status == MembershipStatus.REVOKED
    decision = AccessGate.check(user=staff_user)
    assert not decision.granted
    assert decision.reason.value == "access_revoked"
    assert AuditEvent.objects.filter(event_code="membership.removed").count() == 1


def test_revoke_invite_only_for_pending(clinic, user, staff_membership):
    with pytest.raises(ConflictError):
        TeamService.revoke_invite(clinic_id=clinic.id, actor=user, membership_id=staff_membership.id)


# ----- suspension -----

def test_suspend_and_reactivate_round_trip(clinic, user, staff_user, staff_membership):
    m = TeamService.suspend(clinic_id=clinic.id, actor=user, membership_id=staff_membership.id)
    assert m.status == MembershipStatus.INACTIVE
    assert m.suspended_at is not None
    assert not AccessGate.check(user=staff_user).granted

    m = TeamService.reactivate(clinic_id=clinic.id, actor=user, membership_id=staff_membership.id)
    assert m.status == MembershipStatus.ACCEPTED
    assert m.suspended_at is None
    assert AccessGate.check(user=staff_user).granted


def test_suspend_reports_unsupported_when_schema_lacks_column(clinic, user, staff_membership, monkeypatch):
    import lg_core.iam.services.team as team_module

    monkeypatch.setattr(team_module, "supports_field", lambda model, name: False)

    with pytest.raises(UnsupportedOperationError):
        TeamService.suspend(clinic_id=clinic.id, actor=user, membership_id=staff_membership.id)

    staff_membership.refresh_from_db()
    assert staff_membership.status == MembershipStatus.ACCEPTED


def test_suspension_capability_is_decided_before_membership_reads(clinic, user, staff_membership, monkeypatch):
    introspection = connections["default"].introspection
    real = introspection.get_table_description

    def without_suspended_at(cursor, table):
        return [c for c in real(cursor, table) if c.name != "suspended_at"]

    monkeypatch.setattr(introspection, "get_table_description", without_suspended_at)

    with CaptureQueriesContext(connection) as ctx:
        with pytest.raises(UnsupportedOperationError):
            TeamService.reactivate(clinic_id=clinic.id, actor=user, membership_id=staff_membership.id)

    assert not [q for q in ctx.captured_queries if 'FROM "iam_clinic_membership"' in q["sql"]]


# ----- access flag -----

def test_owner_can_revoke_and_grant_profile_access(clinic, user, staff_user, staff_membership):
    profile = DoctorProfile.objects.get(user=staff_user, clinic=clinic)

    TeamService.revoke_access(actor=user, doctor_profile_id=profile.id)
    profile.refresh_from_db()
    assert profile.access_control is False
    assert profile.access_changed_by_id == user.id

    TeamService.grant_access(actor=user, doctor_profile_id=profile.id)
    profile.refresh_from_db()
    assert profile.access_control is True

    codes = list(AuditEvent.objects.filter(entity_type="DoctorProfile").values_list("event_code", flat=True))
    assert sorted(codes) == ["doctor_profile.access_granted", "doctor_profile.access_revoked"]


def test_staff_cannot_change_profile_access(clinic, manager_user, manager_membership, staff_user, staff_membership):
    profile = DoctorProfile.objects.get(user=staff_user, clinic=clinic)
    with pytest.raises(PermissionDenied):
        TeamService.revoke_access(actor=manager_user, doctor_profile_id=profile.id)


def test_platform_admin_can_change_unlinked_profile(db):
    admin = make_user("root", email="root@example.com")
    admin.is_superuser = True
    admin.save()
    target = make_user("solo", email="solo@example.com")
    profile, _ = AccessGate.provision(user=target)

    TeamService.revoke_access(actor=admin, doctor_profile_id=profile.id)

    assert AccessGate.check(user=target).reason.value == "access_revoked"


def test_second_clinic_membership_is_independent(clinic, user, staff_user, staff_membership):
    from lg_core.clinics.services import ClinicService

    other = ClinicService.create(name="Second Clinic", owner=make_user("boss", email="boss@example.com"))
    make_member(other, staff_user)

    TeamService.remove(clinic_id=clinic.id, actor=user, membership_id=staff_membership.id)

    # still granted through the other clinic's profile
    assert AccessGate.check(user=staff_user).granted
