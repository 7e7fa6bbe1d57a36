# lg_core/audit/models.py
from django.conf import settings
from django.db import models


class AuditEvent(models.Model):
    """
    Immutable audit record for access and role changes.
    """

    clinic_id = models.UUIDField(null=True, blank=True, db_index=True)

    event_code = models.CharField(max_length=128, db_index=True)  # e.g. "membership.role_updated"
    entity_type = models.CharField(max_length=128, db_index=True)  # e.g. "ClinicMembership"
    entity_id = models.CharField(max_length=64, db_index=True)

    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="audit_events",
        null=True,
        blank=True,
    )

    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)
    # {"before": {...}, "after": {...}, ...}
    metadata = models.JSONField(default=dict)

    class Meta:
        db_table = "audit_audit_event"
        ordering = ["-occurred_at", "-id"]
        indexes = [
            models.Index(fields=["clinic_id", "occurred_at"]),
            models.Index(fields=["entity_type", "entity_id"]),
        ]

    def __str__(self) -> str:
        return f"{self.event_code} {self.entity_type}:{self.entity_id}"
