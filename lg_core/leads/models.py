# lg_core/leads/models.py
from django.db import models

from lg_core.common.models import UUIDModel


class QuizLead(UUIDModel):
    """
    One row per completed assessment.

    `doctor_id` is the attribution key as submitted. It is intentionally not a
    foreign key: the lead is stored even when the doctor does not resolve.
    """

    name = models.CharField(max_length=255, null=True, blank=True)
    email = models.CharField(max_length=254, null=True, blank=True)
    phone = models.CharField(max_length=64, null=True, blank=True)

    quiz_type = models.CharField(max_length=64, db_index=True)
    custom_quiz_id = models.CharField(max_length=64, null=True, blank=True)
    score = models.FloatField()
    answers = models.JSONField(null=True, blank=True)

    # free-form; the portal shows "New" when empty
    lead_status = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    lead_source = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    share_key = models.CharField(max_length=128, null=True, blank=True)
    incident_source = models.CharField(max_length=64, null=True, blank=True)
    is_partial = models.BooleanField(null=True, blank=True)

    doctor_id = models.CharField(max_length=64, db_index=True)
    clinic_id = models.UUIDField(null=True, blank=True, db_index=True)
    location_id = models.CharField(max_length=64, null=True, blank=True)

    scheduled_date = models.DateTimeField(null=True, blank=True)
    submitted_at = models.DateTimeField(db_index=True)

    # exact submission body, including keys with no column
    raw_payload = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "leads_quiz_lead"
        ordering = ["-submitted_at"]
        indexes = [
            models.Index(fields=["doctor_id", "submitted_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.name or 'anonymous'} / {self.quiz_type} ({self.score})"
