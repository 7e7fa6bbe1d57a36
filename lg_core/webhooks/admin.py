# lg_core/webhooks/admin.py
from django.contrib import admin

from lg_core.webhooks.models import WebhookDelivery


@admin.register(WebhookDelivery)
class WebhookDeliveryAdmin(admin.ModelAdmin):
    list_display = ("id", "lead", "status", "attempts", "last_status_code", "next_attempt_at", "delivered_at")
    list_filter = ("status",)
    readonly_fields = ("payload", "attempts", "last_status_code", "last_error", "delivered_at")
