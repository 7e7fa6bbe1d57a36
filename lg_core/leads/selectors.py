# lg_core/leads/selectors.py
from __future__ import annotations

from django.db.models import Q, QuerySet

from lg_core.iam.authz import Action, can
from lg_core.iam.models import DoctorProfile
from lg_core.iam.selectors import accepted_memberships_for_principal
from lg_core.leads.models import QuizLead


def lead_scope_for_user(*, user_id: int) -> tuple[list[str], list]:
    """
    (doctor profile ids, clinic ids) whose leads the principal may read.

    Unlinked profiles are the principal's own practice. Clinic-linked leads
    need the `view_leads` capability in that clinic.
    """
    clinic_ids = [
        m.clinic_id
        for m in accepted_memberships_for_principal(user_id=user_id)
        if can(m, Action.VIEW_LEADS)
    ]

    profile_ids = DoctorProfile.objects.filter(
        Q(user_id=user_id, clinic__isnull=True) | Q(clinic_id__in=clinic_ids)
    ).values_list("id", flat=True)

    return [str(pid) for pid in profile_ids], clinic_ids


def leads_in_scope(*, doctor_ids: list[str], clinic_ids: list) -> QuerySet[QuizLead]:
    if not doctor_ids and not clinic_ids:
        return QuizLead.objects.none()
    return QuizLead.objects.filter(Q(doctor_id__in=doctor_ids) | Q(clinic_id__in=clinic_ids)).order_by("-submitted_at")
