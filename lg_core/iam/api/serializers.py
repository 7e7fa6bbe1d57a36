# lg_core/iam/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from lg_core.iam.models import ClinicMembership, DoctorProfile, MemberRole

INVITABLE_ROLE_CHOICES = [(MemberRole.STAFF.value, "Staff"), (MemberRole.PHYSICIAN.value, "Physician")]


# ----- auth -----

class LoginRequestSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField()


class AccessDecisionSerializer(serializers.Serializer):
    state = serializers.CharField()
    granted = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)
    provisioned = serializers.BooleanField()
    role = serializers.CharField()
    profiles = serializers.ListField(child=serializers.DictField(), required=False)


class LoginResponseSerializer(serializers.Serializer):
    detail = serializers.CharField()
    access = AccessDecisionSerializer()


class DetailResponseSerializer(serializers.Serializer):
    detail = serializers.CharField()


# ----- team -----

class PermissionSetSerializer(serializers.Serializer):
    leads = serializers.BooleanField(required=False)
    content = serializers.BooleanField(required=False)
    payments = serializers.BooleanField(required=False)
    team = serializers.BooleanField(required=False)


class ClinicMembershipSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClinicMembership
        fields = [
            "id",
            "clinic",
            "email",
            "first_name",
            "last_name",
            "role",
            "permissions",
            "location_ids",
            "status",
            "token_expires_at",
            "invited_by",
            "user",
            "accepted_at",
            "suspended_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class InvitationSerializer(ClinicMembershipSerializer):
    """Returned to the inviter only; carries the token for the invite link."""

    class Meta(ClinicMembershipSerializer.Meta):
        fields = [*ClinicMembershipSerializer.Meta.fields, "invitation_token"]
        read_only_fields = fields


class InviteSerializer(serializers.Serializer):
    email = serializers.CharField(max_length=254)
    first_name = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    last_name = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    role = serializers.ChoiceField(choices=INVITABLE_ROLE_CHOICES, required=False, default=MemberRole.STAFF.value)
    permissions = PermissionSetSerializer(required=False)
    location_ids = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class AcceptInviteSerializer(serializers.Serializer):
    token = serializers.CharField()


class UpdateRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=INVITABLE_ROLE_CHOICES)


class DoctorProfileAccessSerializer(serializers.ModelSerializer):
    class Meta:
        model = DoctorProfile
        fields = [
            "id",
            "user",
            "clinic",
            "access_control",
            "access_changed_by",
            "access_changed_at",
            "is_staff",
            "is_manager",
            "is_admin",
        ]
        read_only_fields = fields
