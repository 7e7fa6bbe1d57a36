# lg_core/iam/selectors.py
"""
TenantDirectory: read projections over clinics, doctor profiles,
memberships and physicians. Zero rows is never an error here.
"""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.db.models import QuerySet

from lg_core.clinics.selectors import clinic_physicians
from lg_core.iam.models import ClinicMembership, DoctorProfile, MembershipStatus


def profiles_for_principal(*, user_id: int) -> list[DoctorProfile]:
    return list(
        DoctorProfile.objects.select_related("clinic")
        .filter(user_id=user_id)
        .order_by("created_at")
    )


def get_doctor_profile_or_none(*, profile_id) -> Optional[DoctorProfile]:
    return DoctorProfile.objects.select_related("clinic", "user").filter(id=profile_id).first()


def memberships_for_clinic(*, clinic_id: UUID, include_revoked: bool = False) -> QuerySet[ClinicMembership]:
    qs = ClinicMembership.objects.filter(clinic_id=clinic_id)
    if not include_revoked:
        qs = qs.exclude(status=MembershipStatus.REVOKED)
    return qs.order_by("created_at")


def accepted_membership(*, user_id: int, clinic_id: UUID) -> Optional[ClinicMembership]:
    return (
        ClinicMembership.objects.select_related("clinic")
        .filter(user_id=user_id, clinic_id=clinic_id, status=MembershipStatus.ACCEPTED)
        .first()
    )


def accepted_memberships_for_principal(*, user_id: int) -> QuerySet[ClinicMembership]:
    return (
        ClinicMembership.objects.select_related("clinic")
        .filter(user_id=user_id, status=MembershipStatus.ACCEPTED)
        .order_by("clinic__name")
    )


def clinic_member_view(*, clinic_id: UUID) -> list[dict]:
    """
    Flattened "member" view for one clinic.

    Team memberships come first (in invite order), then physicians rendered
    with role "physician". Rows never cross clinics.
    """
    items: list[dict] = []

    for m in memberships_for_clinic(clinic_id=clinic_id):
        items.append(
            {
                "id": str(m.id),
                "kind": "membership",
                "clinic_id": str(m.clinic_id),
                "email": m.email,
                "name": m.full_name,
                "role": m.role,
                "status": m.status,
                "permissions": m.permissions or {},
                "user_id": m.user_id,
            }
        )

    for p in clinic_physicians(clinic_id=clinic_id):
        items.append(
            {
                "id": str(p.id),
                "kind": "physician",
                "clinic_id": str(p.clinic_id),
                "email": p.email,
                "name": p.full_name,
                "role": "physician",
                "status": "active" if p.is_active else "inactive",
                "permissions": {},
                "user_id": None,
            }
        )

    return items
