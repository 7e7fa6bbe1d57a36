# lg_core/clinics/admin.py
from django.contrib import admin

from lg_core.clinics.models import Clinic, Physician


@admin.register(Clinic)
class ClinicAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "email", "city", "created_by", "created_at")
    search_fields = ("name", "slug", "email")
    ordering = ("name",)


@admin.register(Physician)
class PhysicianAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "degree_type", "clinic", "is_active", "display_order")
    list_filter = ("is_active", "degree_type")
    search_fields = ("first_name", "last_name", "email")
