# lg_core/iam/services/team.py
from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Any, Optional
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from lg_core.audit.services import AuditService
from lg_core.common.api.exceptions import ConflictError, NotFoundError, UnsupportedOperationError
from lg_core.common.capabilities import supports_field
from lg_core.common.db import storage_guard
from lg_core.iam.authz import Action, PermissionSet, can
from lg_core.iam.models import ClinicMembership, DoctorProfile, MemberRole, MembershipStatus
from lg_core.iam.selectors import accepted_membership

logger = logging.getLogger(__name__)

INVITABLE_ROLES = (MemberRole.STAFF, MemberRole.PHYSICIAN)


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    try:
        validate_email(email)
    except DjangoValidationError:
        raise ValidationError({"email": "Enter a valid email address."})
    return email


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _token_expiry():
    return timezone.now() + timedelta(days=int(getattr(settings, "INVITATION_TTL_DAYS", 14)))


def _snapshot(m: ClinicMembership) -> dict[str, Any]:
    return {"role": m.role, "status": m.status, "permissions": dict(m.permissions or {})}


def is_platform_admin(user) -> bool:
    if getattr(user, "is_superuser", False):
        return True
    return DoctorProfile.objects.filter(user_id=user.id, is_admin=True).exists()


class TeamService:
    """
    Role & permission management. Every operation is scoped to one clinic and
    authorized through `can(acting_membership, action)`.
    """

    # ----- helpers -----

    @staticmethod
    def _require(*, actor, clinic_id: UUID, action: Action) -> ClinicMembership:
        membership = accepted_membership(user_id=actor.id, clinic_id=clinic_id)
        if not can(membership, action):
            raise PermissionDenied(f"Not allowed to {action.value.replace('_', ' ')} in this clinic.")
        return membership

    @staticmethod
    def _locked_target(*, clinic_id: UUID, membership_id: UUID) -> ClinicMembership:
        target = (
            ClinicMembership.objects.select_for_update()
            .filter(id=membership_id, clinic_id=clinic_id)
            .first()
        )
        if target is None:
            raise NotFoundError("Membership not found.")
        return target

    @staticmethod
    def _require_staff_target(target: ClinicMembership) -> None:
        # owner and physician rows are not manageable through generic actions
        if target.role != MemberRole.STAFF:
            raise PermissionDenied(f"Cannot modify a {target.role} membership.")

    @staticmethod
    def _set_linked_profile_access(*, target: ClinicMembership, value: bool, actor) -> None:
        if not target.user_id:
            return
        DoctorProfile.objects.filter(user_id=target.user_id, clinic_id=target.clinic_id).update(
            access_control=value,
            access_changed_by=actor,
            access_changed_at=timezone.now(),
            updated_at=timezone.now(),
        )

    @staticmethod
    def _audit(*, event_code: str, target: ClinicMembership, actor, before, after) -> None:
        AuditService.log(
            event_code=event_code,
            entity_type="ClinicMembership",
            entity_id=target.id,
            clinic_id=target.clinic_id,
            actor_user_id=getattr(actor, "id", None),
            before=before,
            after=after,
        )

    # ----- invitations -----

    @staticmethod
    @transaction.atomic
    def invite(
        *,
        clinic_id: UUID,
        actor,
        email: str,
        first_name: str = "",
        last_name: str = "",
        role: str = MemberRole.STAFF,
        permissions: Optional[dict] = None,
        location_ids: Optional[list] = None,
    ) -> ClinicMembership:
        acting = TeamService._require(actor=actor, clinic_id=clinic_id, action=Action.INVITE)

        email = _normalize_email(email)
        if role not in INVITABLE_ROLES:
            raise ValidationError({"role": f"Invalid role. Allowed: {[str(r) for r in INVITABLE_ROLES]}"})

        perms = PermissionSet.from_json({"leads": True, "content": True, **(permissions or {})})
        if perms.team and not can(acting, Action.GRANT_TEAM):
            raise PermissionDenied("Only an owner can grant the team permission.")

        existing = (
            ClinicMembership.objects.select_for_update()
            .filter(clinic_id=clinic_id, email=email)
            .exclude(status=MembershipStatus.REVOKED)
            .first()
        )

        if existing is not None:
            expired = existing.token_expires_at is not None and existing.token_expires_at <= timezone.now()
            if existing.status != MembershipStatus.PENDING or not expired:
                raise ValidationError({"email": "This email already has a membership in this clinic."})

            # stale pending invite: re-issue in place
            before = _snapshot(existing)
            existing.first_name = (first_name or "").strip()
            existing.last_name = (last_name or "").strip()
            existing.role = role
            existing.permissions = perms.to_json()
            existing.location_ids = list(location_ids or [])
            existing.invitation_token = _new_token()
            existing.token_expires_at = _token_expiry()
            existing.invited_by = actor
            with storage_guard("membership.reinvite", membership_id=str(existing.id)):
                existing.save()
            TeamService._audit(
                event_code="membership.reinvited", target=existing, actor=actor, before=before, after=_snapshot(existing)
            )
            logger.info("Re-issued invitation membership_id=%s clinic_id=%s", existing.id, clinic_id)
            return existing

        try:
            with transaction.atomic(), storage_guard("membership.invite", clinic_id=str(clinic_id)):
                m = ClinicMembership.objects.create(
                    clinic_id=clinic_id,
                    email=email,
                    first_name=(first_name or "").strip(),
                    last_name=(last_name or "").strip(),
                    role=role,
                    permissions=perms.to_json(),
                    location_ids=list(location_ids or []),
                    status=MembershipStatus.PENDING,
                    invitation_token=_new_token(),
                    token_expires_at=_token_expiry(),
                    invited_by=actor,
                )
        except IntegrityError:
            # a concurrent invite for the same (clinic, email) won
            raise ValidationError({"email": "This email already has a membership in this clinic."})

        TeamService._audit(event_code="membership.invited", target=m, actor=actor, before=None, after=_snapshot(m))
        logger.info("Invited %s to clinic_id=%s as %s", email, clinic_id, role)
        return m

    @staticmethod
    @transaction.atomic
    def accept_invite(*, token: str, user) -> ClinicMembership:
        token = (token or "").strip()
        if not token:
            raise ValidationError({"token": "This field is required."})

        # row lock: a second concurrent accept blocks here, then sees the token gone
        m = ClinicMembership.objects.select_for_update().filter(invitation_token=token).first()
        if m is None:
            raise ConflictError("Invitation is invalid or has already been used.")
        if m.status != MembershipStatus.PENDING:
            raise ConflictError("Invitation has already been used.")
        if m.token_expires_at is not None and m.token_expires_at <= timezone.now():
            raise ValidationError({"token": "Invitation has expired."})

        user_email = (getattr(user, "email", "") or "").strip().lower()
        if user_email and user_email != m.email:
            raise PermissionDenied("This invitation was issued to a different email address.")

        before = _snapshot(m)
        perms = PermissionSet.from_json(m.permissions)
        now = timezone.now()

        with storage_guard("membership.accept", membership_id=str(m.id)):
            profile, _ = DoctorProfile.objects.get_or_create(
                user=user,
                clinic_id=m.clinic_id,
                defaults={
                    "first_name": m.first_name or getattr(user, "first_name", ""),
                    "last_name": m.last_name or getattr(user, "last_name", ""),
                    "email": m.email,
                },
            )
            # the invited role grants portal access, nothing more
            profile.access_control = True
            profile.is_staff = m.role == MemberRole.STAFF
            profile.is_manager = m.role == MemberRole.STAFF and perms.team
            profile.access_changed_by = user
            profile.access_changed_at = now
            profile.save(
                update_fields=[
                    "access_control",
                    "is_staff",
                    "is_manager",
                    "access_changed_by",
                    "access_changed_at",
                    "updated_at",
                ]
            )

            m.user = user
            m.doctor_profile = profile
            m.status = MembershipStatus.ACCEPTED
            m.accepted_at = now
            m.invitation_token = None
            m.save(
                update_fields=["user", "doctor_profile", "status", "accepted_at", "invitation_token", "updated_at"]
            )

        TeamService._audit(event_code="membership.accepted", target=m, actor=user, before=before, after=_snapshot(m))
        logger.info("Invitation accepted membership_id=%s user_id=%s", m.id, user.id)
        return m

    @staticmethod
    @transaction.atomic
    def revoke_invite(*, clinic_id: UUID, actor, membership_id: UUID) -> ClinicMembership:
        TeamService._require(actor=actor, clinic_id=clinic_id, action=Action.INVITE)
        target = TeamService._locked_target(clinic_id=clinic_id, membership_id=membership_id)
        if target.status != MembershipStatus.PENDING:
            raise ConflictError("Only pending invitations can be revoked.")

        before = _snapshot(target)
        target.status = MembershipStatus.REVOKED
        target.invitation_token = None
        with storage_guard("membership.revoke_invite", membership_id=str(target.id)):
            target.save(update_fields=["status", "invitation_token", "updated_at"])

        TeamService._audit(
            event_code="membership.invite_revoked", target=target, actor=actor, before=before, after=_snapshot(target)
        )
        return target

    # ----- role / permission changes -----

    @staticmethod
    @transaction.atomic
    def update_role(*, clinic_id: UUID, actor, membership_id: UUID, role: str) -> ClinicMembership:
        TeamService._require(actor=actor, clinic_id=clinic_id, action=Action.UPDATE_ROLE)
        target = TeamService._locked_target(clinic_id=clinic_id, membership_id=membership_id)
        TeamService._require_staff_target(target)

        if role not in INVITABLE_ROLES:
            raise ValidationError({"role": f"Invalid role. Allowed: {[str(r) for r in INVITABLE_ROLES]}"})

        # idempotent no-op
        if target.role == role:
            return target

        before = _snapshot(target)
        target.role = role
        with storage_guard("membership.update_role", membership_id=str(target.id)):
            target.save(update_fields=["role", "updated_at"])
            if target.user_id:
                DoctorProfile.objects.filter(user_id=target.user_id, clinic_id=clinic_id).update(
                    is_staff=role == MemberRole.STAFF,
                    updated_at=timezone.now(),
                )

        TeamService._audit(
            event_code="membership.role_updated", target=target, actor=actor, before=before, after=_snapshot(target)
        )
        logger.info("Role updated membership_id=%s %s -> %s", target.id, before["role"], role)
        return target

    @staticmethod
    @transaction.atomic
    def update_permissions(*, clinic_id: UUID, actor, membership_id: UUID, permissions: dict) -> ClinicMembership:
        if permissions is None or not isinstance(permissions, dict):
            raise ValidationError({"permissions": "Must be a JSON object."})

        TeamService._require(actor=actor, clinic_id=clinic_id, action=Action.UPDATE_ROLE)
        target = TeamService._locked_target(clinic_id=clinic_id, membership_id=membership_id)
        TeamService._require_staff_target(target)

        current = PermissionSet.from_json(target.permissions)
        updated = PermissionSet.from_json({**current.to_json(), **permissions})

        before = _snapshot(target)
        target.permissions = updated.to_json()
        with storage_guard("membership.update_permissions", membership_id=str(target.id)):
            target.save(update_fields=["permissions", "updated_at"])
            if target.user_id and current.team != updated.team:
                DoctorProfile.objects.filter(user_id=target.user_id, clinic_id=clinic_id).update(
                    is_manager=updated.team,
                    updated_at=timezone.now(),
                )

        TeamService._audit(
            event_code="membership.permissions_updated",
            target=target,
            actor=actor,
            before=before,
            after=_snapshot(target),
        )
        return target

    @staticmethod
    @transaction.atomic
    def remove(*, clinic_id: UUID, actor, membership_id: UUID) -> ClinicMembership:
        TeamService._require(actor=actor, clinic_id=clinic_id, action=Action.REMOVE_MEMBER)
        target = TeamService._locked_target(clinic_id=clinic_id, membership_id=membership_id)
        TeamService._require_staff_target(target)

        before = _snapshot(target)
        target.status = MembershipStatus.REVOKED
        target.invitation_token = None
        with storage_guard("membership.remove", membership_id=str(target.id)):
            target.save(update_fields=["status", "invitation_token", "updated_at"])
            TeamService._set_linked_profile_access(target=target, value=False, actor=actor)

        TeamService._audit(
            event_code="membership.removed", target=target, actor=actor, before=before, after=_snapshot(target)
        )
        logger.info("Removed membership_id=%s from clinic_id=%s", target.id, clinic_id)
        return target

    # ----- suspension (schema-dependent) -----

    @staticmethod
    def _require_suspension_support() -> None:
        # must run before any membership row is loaded; those reads select suspended_at
        if not supports_field(ClinicMembership, "suspended_at"):
            raise UnsupportedOperationError("Member suspension is not supported by the current schema.")

    @staticmethod
    @transaction.atomic
    def suspend(*, clinic_id: UUID, actor, membership_id: UUID) -> ClinicMembership:
        TeamService._require_suspension_support()
        TeamService._require(actor=actor, clinic_id=clinic_id, action=Action.REMOVE_MEMBER)
        target = TeamService._locked_target(clinic_id=clinic_id, membership_id=membership_id)
        TeamService._require_staff_target(target)

        if target.status == MembershipStatus.INACTIVE:
            return target
        if target.status != MembershipStatus.ACCEPTED:
            raise ConflictError("Only accepted members can be suspended.")

        before = _snapshot(target)
        target.status = MembershipStatus.INACTIVE
        target.suspended_at = timezone.now()
        with storage_guard("membership.suspend", membership_id=str(target.id)):
            target.save(update_fields=["status", "suspended_at", "updated_at"])
            TeamService._set_linked_profile_access(target=target, value=False, actor=actor)

        TeamService._audit(
            event_code="membership.suspended", target=target, actor=actor, before=before, after=_snapshot(target)
        )
        return target

    @staticmethod
    @transaction.atomic
    def reactivate(*, clinic_id: UUID, actor, membership_id: UUID) -> ClinicMembership:
        TeamService._require_suspension_support()
        TeamService._require(actor=actor, clinic_id=clinic_id, action=Action.REMOVE_MEMBER)
        target = TeamService._locked_target(clinic_id=clinic_id, membership_id=membership_id)
        TeamService._require_staff_target(target)

        if target.status == MembershipStatus.ACCEPTED:
            return target
        if target.status != MembershipStatus.INACTIVE:
            raise ConflictError("Only suspended members can be reactivated.")

        before = _snapshot(target)
        target.status = MembershipStatus.ACCEPTED
        target.suspended_at = None
        with storage_guard("membership.reactivate", membership_id=str(target.id)):
            target.save(update_fields=["status", "suspended_at", "updated_at"])
            TeamService._set_linked_profile_access(target=target, value=True, actor=actor)

        TeamService._audit(
            event_code="membership.reactivated", target=target, actor=actor, before=before, after=_snapshot(target)
        )
        return target

    # ----- access flag -----

    @staticmethod
    @transaction.atomic
    def set_access(*, actor, doctor_profile_id: UUID, access: bool) -> DoctorProfile:
        profile = DoctorProfile.objects.select_for_update().filter(id=doctor_profile_id).first()
        if profile is None:
            raise NotFoundError("Doctor profile not found.")

        allowed = is_platform_admin(actor)
        if not allowed and profile.clinic_id:
            allowed = can(accepted_membership(user_id=actor.id, clinic_id=profile.clinic_id), Action.MANAGE_ACCESS)
        if not allowed:
            raise PermissionDenied("Not allowed to change access for this profile.")

        # idempotent no-op
        if profile.access_control is access:
            return profile

        before = {"access_control": profile.access_control}
        profile.access_control = access
        profile.access_changed_by = actor
        profile.access_changed_at = timezone.now()
        with storage_guard("doctor_profile.set_access", doctor_profile_id=str(profile.id)):
            profile.save(update_fields=["access_control", "access_changed_by", "access_changed_at", "updated_at"])

        AuditService.log(
            event_code="doctor_profile.access_granted" if access else "doctor_profile.access_revoked",
            entity_type="DoctorProfile",
            entity_id=profile.id,
            clinic_id=profile.clinic_id,
            actor_user_id=actor.id,
            before=before,
            after={"access_control": access},
        )
        logger.info("Access %s for doctor_profile_id=%s by user_id=%s", access, profile.id, actor.id)
        return profile

    @staticmethod
    def grant_access(*, actor, doctor_profile_id: UUID) -> DoctorProfile:
        return TeamService.set_access(actor=actor, doctor_profile_id=doctor_profile_id, access=True)

    @staticmethod
    def revoke_access(*, actor, doctor_profile_id: UUID) -> DoctorProfile:
        return TeamService.set_access(actor=actor, doctor_profile_id=doctor_profile_id, access=False)
