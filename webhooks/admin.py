from django.contrib import admin
from .models import WebhookDelivery, WebhookEndpoint


@admin.register(WebhookEndpoint)
class WebhookEndpointAdmin(admin.ModelAdmin):
    list_display = ("url", "user", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("url", "user__email")
    readonly_fields = ("secret_ref", "created_at", "updated_at")
    ordering = ("-created_at",)


@admin.register(WebhookDelivery)
class WebhookDeliveryAdmin(admin.ModelAdmin):
    list_display = ("event", "endpoint", "status_code", "attempts", "created_at", "delivered_at")
    list_filter = ("event",)
    search_fields = ("endpoint__url",)
    readonly_fields = ("payload_json", "status_code", "attempts", "response", "created_at", "delivered_at")
    ordering = ("-created_at",)
