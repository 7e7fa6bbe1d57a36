# lg_core/links/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from lg_core.links.models import LinkMapping


class LinkMappingSerializer(serializers.ModelSerializer):
    class Meta:
        model = LinkMapping
        fields = [
            "id",
            "short_code",
            "doctor",
            "quiz_type",
            "custom_quiz_id",
            "lead_source",
            "click_count",
            "created_at",
        ]
        read_only_fields = fields


class LinkCreateSerializer(serializers.Serializer):
    doctor_profile_id = serializers.UUIDField()
    quiz_type = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    custom_quiz_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    lead_source = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs.get("quiz_type") and attrs.get("custom_quiz_id"):
            raise serializers.ValidationError("Set either quiz_type or custom_quiz_id, not both.")
        return attrs


class RedirectTargetSerializer(serializers.Serializer):
    url = serializers.CharField()
    short_code = serializers.CharField()
    doctor_id = serializers.CharField()
    quiz_type = serializers.CharField(allow_null=True)
    custom_quiz_id = serializers.CharField(allow_null=True)
    lead_source = serializers.CharField()
