# webhooks/serializers.py
from urllib.parse import urlparse

from rest_framework import serializers

from .models import WebhookDelivery, WebhookEndpoint, WebhookEvent


class WebhookEndpointSerializer(serializers.ModelSerializer):
    events = serializers.ListField(
        child=serializers.ChoiceField(choices=WebhookEvent.choices),
        allow_empty=False,
    )

    class Meta:
        model = WebhookEndpoint
        fields = ["id", "url", "events", "is_active", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_url(self, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise serializers.ValidationError("Must be an absolute http(s) URL.")
        return value

    def validate_events(self, value):
        cleaned = []
        for event in value:
            if event not in cleaned:
                cleaned.append(event)
        return cleaned


class WebhookDeliverySerializer(serializers.ModelSerializer):
    payload = serializers.JSONField(read_only=True)
    state = serializers.CharField(read_only=True)

    class Meta:
        model = WebhookDelivery
        fields = [
            "id",
            "endpoint",
            "event",
            "payload",
            "state",
            "status_code",
            "attempts",
            "response",
            "created_at",
            "delivered_at",
        ]
        read_only_fields = fields
