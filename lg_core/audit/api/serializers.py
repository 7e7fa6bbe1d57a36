from rest_framework import serializers

from lg_core.audit.models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "clinic_id",
            "event_code",
            "entity_type",
            "entity_id",
            "actor_user",
            "occurred_at",
            "metadata",
        ]
        read_only_fields = fields
