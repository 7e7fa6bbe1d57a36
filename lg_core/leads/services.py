# lg_core/leads/services.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.exceptions import ValidationError

from lg_core.common.api.exceptions import NotFoundError, StorageError
from lg_core.iam.models import DoctorProfile
from lg_core.leads.models import QuizLead
from lg_core.webhooks.dispatcher import DeliveryResult, build_envelope, get_dispatcher

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "email", "phone", "quiz_type", "doctor_id", "score")

OPTIONAL_TEXT_FIELDS = (
    "lead_source",
    "share_key",
    "custom_quiz_id",
    "incident_source",
    "location_id",
    "lead_status",
)


@dataclass(frozen=True)
class IntakeResult:
    lead: QuizLead
    envelope: dict[str, Any]
    n8n_triggered: bool
    delivery: DeliveryResult


def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def parse_scheduled_date(value):
    """
    None for empty input. A well-formed but impossible date fails validation like malformed text.
    """
    if value in (None, ""):
        return None
    try:
        parsed = parse_datetime(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError({"scheduled_date": "Must be an ISO-8601 datetime."})
    return parsed


def validate_submission(payload: Any) -> dict[str, Any]:
    """
    Re-validates regardless of caller; the error names the FIRST missing field.
    """
    if not isinstance(payload, dict):
        raise ValidationError({"non_field_errors": ["Submission must be a JSON object."]})

    for field in REQUIRED_FIELDS:
        if _is_missing(payload.get(field)):
            raise ValidationError({field: f"Missing required field: {field}"})

    score = payload["score"]
    if isinstance(score, bool):
        raise ValidationError({"score": "Score must be a number."})
    try:
        numeric = float(score)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError({"score": "Score must be a number."})
    if not math.isfinite(numeric):
        raise ValidationError({"score": "Score must be a finite number."})

    if payload.get("clinic_id"):
        try:
            UUID(str(payload["clinic_id"]))
        except ValueError:
            raise ValidationError({"clinic_id": "Must be a valid UUID."})

    parse_scheduled_date(payload.get("scheduled_date"))

    return payload


def resolve_doctor(doctor_id) -> Optional[DoctorProfile]:
    """
    Best-effort enrichment: any failure is logged and yields None.
    """
    try:
        return DoctorProfile.objects.select_related("clinic").get(id=doctor_id)
    except DoctorProfile.DoesNotExist:
        logger.warning("Lead doctor not found doctor_id=%s", doctor_id)
    except (DjangoValidationError, ValueError):
        logger.warning("Lead doctor id is not a valid profile id doctor_id=%s", doctor_id)
    except DatabaseError:
        logger.warning("Lead doctor lookup failed doctor_id=%s", doctor_id, exc_info=True)
    return None


class LeadIntakeService:
    @staticmethod
    def persist(payload: dict[str, Any]) -> QuizLead:
        fields = {k: (str(payload[k]) if payload.get(k) not in (None, "") else None) for k in OPTIONAL_TEXT_FIELDS}
        is_partial = payload.get("is_partial")

        try:
            with transaction.atomic():
                return QuizLead.objects.create(
                    name=str(payload["name"]).strip(),
                    email=str(payload["email"]).strip(),
                    phone=str(payload["phone"]).strip(),
                    quiz_type=str(payload["quiz_type"]).strip(),
                    score=float(payload["score"]),
                    answers=payload.get("answers"),
                    doctor_id=str(payload["doctor_id"]).strip(),
                    clinic_id=payload.get("clinic_id") or None,
                    scheduled_date=parse_scheduled_date(payload.get("scheduled_date")),
                    is_partial=bool(is_partial) if is_partial is not None else None,
                    submitted_at=timezone.now(),
                    raw_payload=payload,
                    **fields,
                )
        except DatabaseError as e:
            logger.error("Lead persistence failed doctor_id=%s", payload.get("doctor_id"), exc_info=True)
            raise StorageError("Lead could not be saved.") from e

    @staticmethod
    def submit(payload: Any) -> IntakeResult:
        """
        validate -> persist -> resolve doctor -> dispatch.
        Only validation and persistence can fail the call.
        """
        payload = validate_submission(payload)
        lead = LeadIntakeService.persist(payload)

        doctor = resolve_doctor(lead.doctor_id)
        envelope = build_envelope(lead=lead, doctor=doctor, submission=payload)

        dispatcher = get_dispatcher()
        delivery = dispatcher.dispatch(envelope=envelope, lead=lead)

        return IntakeResult(
            lead=lead,
            envelope=envelope,
            n8n_triggered=dispatcher.configured,
            delivery=delivery,
        )

    @staticmethod
    @transaction.atomic
    def update_status(
        *,
        lead_id: UUID,
        lead_status: Optional[str] = None,
        scheduled_date=None,
        clear_scheduled_date: bool = False,
    ) -> QuizLead:
        lead = QuizLead.objects.select_for_update().filter(id=lead_id).first()
        if lead is None:
            raise NotFoundError("Lead not found.")

        update_fields = ["updated_at"]
        if lead_status is not None:
            lead.lead_status = lead_status.strip() or None
            update_fields.append("lead_status")
        if scheduled_date is not None or clear_scheduled_date:
            lead.scheduled_date = scheduled_date
            update_fields.append("scheduled_date")

        lead.save(update_fields=update_fields)
        return lead
