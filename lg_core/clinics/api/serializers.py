# lg_core/clinics/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from lg_core.clinics.models import Clinic, DegreeType, Physician


class ClinicSerializer(serializers.ModelSerializer):
    class Meta:
        model = Clinic
        fields = [
            "id",
            "name",
            "slug",
            "email",
            "phone",
            "website",
            "address",
            "city",
            "state",
            "zip_code",
            "country",
            "description",
            "primary_color",
            "secondary_color",
            "font_family",
            "logo_url",
            "avatar_url",
            "tagline",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ClinicCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    slug = serializers.SlugField(max_length=64, required=False, allow_null=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    website = serializers.URLField(required=False, allow_blank=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=128, required=False, allow_blank=True)
    state = serializers.CharField(max_length=128, required=False, allow_blank=True)
    zip_code = serializers.CharField(max_length=16, required=False, allow_blank=True)
    country = serializers.CharField(max_length=64, required=False, allow_blank=True)


class ClinicBrandingSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    primary_color = serializers.CharField(max_length=16, required=False, allow_blank=True)
    secondary_color = serializers.CharField(max_length=16, required=False, allow_blank=True)
    font_family = serializers.CharField(max_length=64, required=False, allow_blank=True)
    logo_url = serializers.URLField(required=False, allow_blank=True)
    avatar_url = serializers.URLField(required=False, allow_blank=True)
    tagline = serializers.CharField(max_length=255, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    website = serializers.URLField(required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)


class ClinicMemberSerializer(serializers.Serializer):
    """Flattened member view (team memberships + physicians)."""

    id = serializers.CharField()
    kind = serializers.CharField()
    clinic_id = serializers.CharField()
    email = serializers.CharField(allow_blank=True)
    name = serializers.CharField(allow_blank=True)
    role = serializers.CharField()
    status = serializers.CharField()
    permissions = serializers.DictField()
    user_id = serializers.IntegerField(allow_null=True)


class PhysicianSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Physician
        fields = [
            "id",
            "clinic",
            "first_name",
            "last_name",
            "full_name",
            "degree_type",
            "credentials",
            "email",
            "mobile",
            "bio",
            "short_bio",
            "headshot_url",
            "full_shot_url",
            "is_active",
            "display_order",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PhysicianWriteSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=128, required=False)
    last_name = serializers.CharField(max_length=128, required=False)
    degree_type = serializers.ChoiceField(choices=DegreeType.choices, required=False)
    credentials = serializers.ListField(child=serializers.CharField(), required=False)
    email = serializers.EmailField(required=False, allow_blank=True)
    mobile = serializers.CharField(max_length=32, required=False, allow_blank=True)
    bio = serializers.CharField(required=False, allow_blank=True)
    short_bio = serializers.CharField(max_length=500, required=False, allow_blank=True)
    headshot_url = serializers.URLField(required=False, allow_blank=True)
    full_shot_url = serializers.URLField(required=False, allow_blank=True)
    display_order = serializers.IntegerField(min_value=0, required=False)
