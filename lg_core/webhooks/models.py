# lg_core/webhooks/models.py
from django.db import models

from lg_core.common.models import UUIDModel
from lg_core.leads.models import QuizLead


class DeliveryStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    DELIVERED = "delivered", "Delivered"
    FAILED = "failed", "Failed"


class WebhookDelivery(UUIDModel):
    """
    Outbox row: the envelope is persisted first and delivered later by
    `manage.py deliver_webhooks`.
    """

    lead = models.ForeignKey(QuizLead, on_delete=models.SET_NULL, related_name="webhook_deliveries", null=True, blank=True)
    url = models.URLField(max_length=1000)
    payload = models.JSONField()

    status = models.CharField(max_length=16, choices=DeliveryStatus.choices, default=DeliveryStatus.PENDING, db_index=True)
    attempts = models.PositiveIntegerField(default=0)
    last_status_code = models.PositiveIntegerField(null=True, blank=True)
    last_error = models.TextField(blank=True, default="")

    next_attempt_at = models.DateTimeField(db_index=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "webhooks_delivery"
        indexes = [
            models.Index(fields=["status", "next_attempt_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.status} -> {self.url} ({self.attempts})"
