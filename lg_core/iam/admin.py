# lg_core/iam/admin.py
from django.contrib import admin

from lg_core.iam.models import ClinicMembership, DoctorProfile


@admin.register(DoctorProfile)
class DoctorProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "clinic", "access_control", "is_staff", "is_manager", "is_admin", "access_changed_at")
    list_filter = ("access_control", "is_staff", "is_manager", "is_admin")
    search_fields = ("email", "first_name", "last_name", "clinic_name", "user__username")
    readonly_fields = ("access_changed_by", "access_changed_at", "created_at", "updated_at")
    exclude = ("twilio_auth_token",)


@admin.register(ClinicMembership)
class ClinicMembershipAdmin(admin.ModelAdmin):
    list_display = ("email", "clinic", "role", "status", "invited_by", "accepted_at", "created_at")
    list_filter = ("role", "status")
    search_fields = ("email", "first_name", "last_name", "clinic__name")
    readonly_fields = ("invitation_token", "token_expires_at", "accepted_at", "suspended_at")
