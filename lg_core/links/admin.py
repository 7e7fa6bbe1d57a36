# lg_core/links/admin.py
from django.contrib import admin

from lg_core.links.models import LinkMapping


@admin.register(LinkMapping)
class LinkMappingAdmin(admin.ModelAdmin):
    list_display = ("short_code", "doctor", "quiz_type", "custom_quiz_id", "lead_source", "click_count", "created_at")
    search_fields = ("short_code", "lead_source")
    readonly_fields = ("short_code", "doctor", "quiz_type", "custom_quiz_id", "click_count")
