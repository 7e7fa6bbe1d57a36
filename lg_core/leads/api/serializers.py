# lg_core/leads/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from lg_core.leads.models import QuizLead


class QuizLeadSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuizLead
        fields = [
            "id",
            "name",
            "email",
            "phone",
            "quiz_type",
            "custom_quiz_id",
            "score",
            "answers",
            "lead_status",
            "lead_source",
            "share_key",
            "doctor_id",
            "clinic_id",
            "location_id",
            "scheduled_date",
            "submitted_at",
            "created_at",
        ]
        read_only_fields = fields


class LeadStatusUpdateSerializer(serializers.Serializer):
    lead_status = serializers.CharField(max_length=64, required=False, allow_blank=True)
    scheduled_date = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide lead_status and/or scheduled_date.")
        return attrs


class LeadIntakeRequestSerializer(serializers.Serializer):
    """Documentation only; the intake endpoint validates the raw body itself."""

    name = serializers.CharField()
    email = serializers.CharField()
    phone = serializers.CharField()
    quiz_type = serializers.CharField()
    doctor_id = serializers.CharField()
    score = serializers.FloatField()
    answers = serializers.JSONField(required=False)
    lead_source = serializers.CharField(required=False)
    share_key = serializers.CharField(required=False)
    maxScore = serializers.FloatField(required=False)
    quiz_title = serializers.CharField(required=False)
    quiz_description = serializers.CharField(required=False)


class LeadIntakeResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    data = serializers.DictField()
    message = serializers.CharField()
    webhook_id = serializers.CharField()
    n8n_triggered = serializers.BooleanField()


class LeadIntakeErrorSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    error = serializers.CharField()
    details = serializers.CharField()
