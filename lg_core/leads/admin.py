# lg_core/leads/admin.py
from django.contrib import admin

from lg_core.leads.models import QuizLead


@admin.register(QuizLead)
class QuizLeadAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "quiz_type", "score", "lead_status", "lead_source", "doctor_id", "submitted_at")
    list_filter = ("quiz_type", "lead_status", "lead_source")
    search_fields = ("name", "email", "phone", "doctor_id")
    readonly_fields = ("submitted_at", "raw_payload")
    ordering = ("-submitted_at",)
