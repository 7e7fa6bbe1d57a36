# lg_core/clinics/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.db.models import QuerySet

from lg_core.clinics.models import Clinic, Physician


def get_clinic_or_none(*, clinic_id: UUID) -> Optional[Clinic]:
    return Clinic.objects.filter(id=clinic_id).first()


def clinic_physicians(*, clinic_id: UUID, active_only: bool = False) -> QuerySet[Physician]:
    qs = Physician.objects.filter(clinic_id=clinic_id)
    if active_only:
        qs = qs.filter(is_active=True)
    return qs.order_by("display_order", "last_name")
