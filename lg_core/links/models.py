# lg_core/links/models.py
from django.db import models
from django.db.models import Q

from lg_core.common.models import TimeStampedModel
from lg_core.iam.models import DoctorProfile


class LinkMapping(TimeStampedModel):
    """
    Short code -> assessment target.
    Immutable once created; only click_count moves (atomic increments).
    """

    short_code = models.CharField(max_length=32, unique=True)
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.PROTECT, related_name="links")

    # exactly one of these may be set; neither means the platform default quiz
    quiz_type = models.CharField(max_length=64, blank=True, default="")
    custom_quiz_id = models.CharField(max_length=64, blank=True, default="")

    lead_source = models.CharField(max_length=64, blank=True, default="")
    click_count = models.PositiveBigIntegerField(default=0)

    class Meta:
        db_table = "links_link_mapping"
        constraints = [
            models.CheckConstraint(
                condition=Q(quiz_type="") | Q(custom_quiz_id=""),
                name="ck_link_quiz_xor_custom",
            ),
        ]
        indexes = [
            models.Index(fields=["doctor", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"/s/{self.short_code}"
