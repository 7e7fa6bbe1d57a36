# lg_core/clinics/services.py
from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from lg_core.audit.services import AuditService
from lg_core.clinics.models import Clinic, DegreeType, Physician
from lg_core.common.api.exceptions import NotFoundError
from lg_core.iam.authz import Action, PermissionSet, can
from lg_core.iam.models import ClinicMembership, DoctorProfile, MemberRole, MembershipStatus
from lg_core.iam.selectors import accepted_membership

logger = logging.getLogger(__name__)

BRANDING_FIELDS = (
    "primary_color",
    "secondary_color",
    "font_family",
    "logo_url",
    "avatar_url",
    "tagline",
)

CONTACT_FIELDS = (
    "email",
    "phone",
    "website",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
    "description",
)

PHYSICIAN_FIELDS = (
    "first_name",
    "last_name",
    "degree_type",
    "credentials",
    "email",
    "mobile",
    "bio",
    "short_bio",
    "headshot_url",
    "full_shot_url",
    "display_order",
)


def _require(*, actor, clinic_id: UUID, action: Action) -> None:
    if not can(accepted_membership(user_id=actor.id, clinic_id=clinic_id), action):
        raise PermissionDenied(f"Not allowed to {action.value.replace('_', ' ')} in this clinic.")


class ClinicService:
    """
    All Clinic mutations live here (write-model boundary).
    """

    @staticmethod
    @transaction.atomic
    def create(*, name: str, owner, slug: Optional[str] = None, **fields: Any) -> Clinic:
        name = (name or "").strip()
        if not name:
            raise ValidationError({"name": "This field is required."})

        unknown = set(fields) - set(CONTACT_FIELDS) - set(BRANDING_FIELDS)
        if unknown:
            raise ValidationError({"fields": f"Unknown fields: {sorted(unknown)}"})

        clinic = Clinic.objects.create(name=name, slug=slug or None, created_by=owner, **fields)

        ClinicMembership.objects.create(
            clinic=clinic,
            email=(owner.email or "").strip().lower(),
            first_name=owner.first_name or "",
            last_name=owner.last_name or "",
            role=MemberRole.OWNER,
            permissions=PermissionSet.full().to_json(),
            status=MembershipStatus.ACCEPTED,
            user=owner,
            accepted_at=timezone.now(),
        )

        # an unlinked profile becomes this clinic's profile; otherwise add one
        profile = DoctorProfile.objects.select_for_update().filter(user=owner, clinic__isnull=True).first()
        if profile is not None:
            profile.clinic = clinic
            profile.clinic_name = name
            profile.access_control = True
            profile.save(update_fields=["clinic", "clinic_name", "access_control", "updated_at"])
        else:
            profile, _ = DoctorProfile.objects.get_or_create(
                user=owner,
                clinic=clinic,
                defaults={
                    "first_name": owner.first_name or "",
                    "last_name": owner.last_name or "",
                    "email": owner.email or "",
                    "clinic_name": name,
                    "access_control": True,
                },
            )

        ClinicMembership.objects.filter(clinic=clinic, user=owner).update(doctor_profile=profile)

        AuditService.log(
            event_code="clinic.created",
            entity_type="Clinic",
            entity_id=clinic.id,
            clinic_id=clinic.id,
            actor_user_id=owner.id,
            after={"name": name},
        )
        logger.info("Clinic created clinic_id=%s owner_user_id=%s", clinic.id, owner.id)
        return clinic

    @staticmethod
    @transaction.atomic
    def update_branding(*, clinic_id: UUID, actor, fields: dict) -> Clinic:
        if fields is None or not isinstance(fields, dict):
            raise ValidationError({"fields": "Must be a JSON object."})

        allowed = set(BRANDING_FIELDS) | set(CONTACT_FIELDS) | {"name"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationError({"fields": f"Unknown fields: {sorted(unknown)}"})

        _require(actor=actor, clinic_id=clinic_id, action=Action.MANAGE_CLINIC)

        clinic = Clinic.objects.select_for_update().filter(id=clinic_id).first()
        if clinic is None:
            raise NotFoundError("Clinic not found.")

        if "name" in fields and not (fields["name"] or "").strip():
            raise ValidationError({"name": "This field may not be blank."})

        before = {k: getattr(clinic, k) for k in fields}
        for k, v in fields.items():
            setattr(clinic, k, v if v is not None else "")
        clinic.save(update_fields=[*fields.keys(), "updated_at"])

        AuditService.log(
            event_code="clinic.updated",
            entity_type="Clinic",
            entity_id=clinic.id,
            clinic_id=clinic.id,
            actor_user_id=actor.id,
            before=before,
            after={k: getattr(clinic, k) for k in fields},
        )
        return clinic


class PhysicianService:
    """
    Public-facing physician records. Managed with the `content` capability.
    """

    @staticmethod
    def _clean(fields: dict) -> dict:
        unknown = set(fields) - set(PHYSICIAN_FIELDS)
        if unknown:
            raise ValidationError({"fields": f"Unknown fields: {sorted(unknown)}"})
        if "degree_type" in fields and fields["degree_type"] not in DegreeType.values:
            raise ValidationError({"degree_type": f"Invalid degree type. Allowed: {list(DegreeType.values)}"})
        if "credentials" in fields and not isinstance(fields["credentials"], list):
            raise ValidationError({"credentials": "Must be a list."})
        return fields

    @staticmethod
    @transaction.atomic
    def create(*, clinic_id: UUID, actor, first_name: str, last_name: str, **fields: Any) -> Physician:
        _require(actor=actor, clinic_id=clinic_id, action=Action.MANAGE_CONTENT)

        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()
        if not first_name:
            raise ValidationError({"first_name": "This field is required."})
        if not last_name:
            raise ValidationError({"last_name": "This field is required."})

        fields = PhysicianService._clean(fields)
        return Physician.objects.create(clinic_id=clinic_id, first_name=first_name, last_name=last_name, **fields)

    @staticmethod
    @transaction.atomic
    def update(*, clinic_id: UUID, actor, physician_id: UUID, fields: dict) -> Physician:
        _require(actor=actor, clinic_id=clinic_id, action=Action.MANAGE_CONTENT)
        fields = PhysicianService._clean(dict(fields or {}))

        p = Physician.objects.select_for_update().filter(id=physician_id, clinic_id=clinic_id).first()
        if p is None:
            raise NotFoundError("Physician not found.")
        if not fields:
            return p

        for k, v in fields.items():
            setattr(p, k, v)
        p.save(update_fields=[*fields.keys(), "updated_at"])
        return p

    @staticmethod
    @transaction.atomic
    def deactivate(*, clinic_id: UUID, actor, physician_id: UUID) -> Physician:
        _require(actor=actor, clinic_id=clinic_id, action=Action.MANAGE_CONTENT)

        p = Physician.objects.select_for_update().filter(id=physician_id, clinic_id=clinic_id).first()
        if p is None:
            raise NotFoundError("Physician not found.")

        # idempotent no-op
        if not p.is_active:
            return p

        p.is_active = False
        p.save(update_fields=["is_active", "updated_at"])
        return p
