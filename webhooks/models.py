# webhooks/models.py
import json
import uuid

from django.conf import settings
from django.db import models


class WebhookEvent(models.TextChoices):
    PAGE_VIEWED = "page.viewed", "Page viewed"
    LINK_CLICKED = "link.clicked", "Link clicked"
    PAGE_UPDATED = "page.updated", "Page updated"
    BLOCK_CREATED = "block.created", "Block created"
    BLOCK_DELETED = "block.deleted", "Block deleted"


class DeliveryState(models.TextChoices):
    PENDING = "pending", "Pending"
    DELIVERED = "delivered", "Delivered"
    FAILED = "failed", "Failed"


class WebhookEndpoint(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="webhook_endpoints",
    )
    url = models.URLField(max_length=2048)
    events = models.JSONField(default=list)
    # Opaque vault id; the signing secret itself never touches this table.
    secret_ref = models.CharField(max_length=255, editable=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=["user", "is_active"], name="webhooks_endpoint_user_active"),
        ]

    def __str__(self):
        return f"{self.url} ({', '.join(self.events)})"

    def subscribes_to(self, event: str) -> bool:
        return event in (self.events or [])


class WebhookDelivery(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    endpoint = models.ForeignKey(WebhookEndpoint, on_delete=models.CASCADE, related_name="deliveries")
    event = models.CharField(max_length=50, choices=WebhookEvent.choices)
    # Exact request body, serialized once at emission time and replayed as-is.
    payload_json = models.TextField(editable=False)
    status_code = models.IntegerField(null=True, blank=True)
    attempts = models.PositiveSmallIntegerField(default=0)
    response = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("-created_at",)
        verbose_name_plural = "webhook deliveries"
        indexes = [
            models.Index(fields=["endpoint", "created_at"], name="webhooks_delivery_endpoint_ts"),
        ]

    def __str__(self):
        return f"{self.event} → {self.endpoint_id} ({self.state})"

    @property
    def payload(self):
        return json.loads(self.payload_json)

    @property
    def state(self) -> str:
        if self.delivered_at is not None:
            return DeliveryState.DELIVERED
        if self.attempts == 0:
            return DeliveryState.PENDING
        return DeliveryState.FAILED

    @property
    def is_retryable(self) -> bool:
        return self.state == DeliveryState.FAILED
