# webhooks/views.py
import logging
import uuid

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import WebhookDelivery, WebhookEndpoint, WebhookEvent
from .serializers import WebhookDeliverySerializer, WebhookEndpointSerializer
from .services import (
    DeliveryNotRetryable,
    create_endpoint,
    delete_endpoint,
    recent_deliveries,
    retry_delivery,
    update_endpoint,
)
from .vault import VaultError

logger = logging.getLogger(__name__)

RECENT_DELIVERIES_LIMIT = 20
MAX_DELIVERIES_LIMIT = 100


class WebhookEndpointViewSet(viewsets.ModelViewSet):
    serializer_class = WebhookEndpointSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return WebhookEndpoint.objects.filter(user=self.request.user).order_by("-created_at")

    def list(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return Response({"endpoints": serializer.data, "valid_events": WebhookEvent.values})

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            endpoint, secret = create_endpoint(
                request.user,
                url=serializer.validated_data["url"],
                events=serializer.validated_data["events"],
            )
        except VaultError as exc:
            logger.error("Could not store webhook secret for user=%s: %s", request.user.pk, exc)
            return Response(
                {"detail": "Failed to securely store webhook secret. Please try again."},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        data = dict(self.get_serializer(endpoint).data)
        # Shown once; the plaintext is never retrievable again.
        data["secret"] = secret
        data["message"] = "Save this secret. It won't be shown again."
        return Response(data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, *args, **kwargs):
        endpoint = self.get_object()
        deliveries = recent_deliveries(endpoint, limit=RECENT_DELIVERIES_LIMIT)
        return Response(
            {
                "endpoint": self.get_serializer(endpoint).data,
                "deliveries": WebhookDeliverySerializer(deliveries, many=True).data,
            }
        )

    def perform_update(self, serializer):
        update_endpoint(serializer.instance, **serializer.validated_data)

    def perform_destroy(self, instance):
        delete_endpoint(instance)

    @action(detail=True, methods=["get"], url_path="deliveries")
    def deliveries(self, request, pk=None):
        endpoint = self.get_object()
        limit = request.query_params.get("limit", 50)
        try:
            limit = max(1, min(int(limit), MAX_DELIVERIES_LIMIT))
        except (TypeError, ValueError):
            return Response({"detail": "limit must be an integer."}, status=status.HTTP_400_BAD_REQUEST)
        deliveries = recent_deliveries(endpoint, limit=limit)
        return Response(WebhookDeliverySerializer(deliveries, many=True).data)


class WebhookDeliveryViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = WebhookDeliverySerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = WebhookDelivery.objects.filter(endpoint__user=self.request.user).order_by("-created_at")
        endpoint_id = self.request.query_params.get("endpoint")
        if endpoint_id:
            try:
                queryset = queryset.filter(endpoint_id=uuid.UUID(endpoint_id))
            except ValueError:
                return queryset.none()
        event = self.request.query_params.get("event")
        if event:
            queryset = queryset.filter(event=event)
        return queryset

    @action(detail=True, methods=["post"], url_path="retry")
    def retry(self, request, pk=None):
        delivery = self.get_object()
        try:
            retry_delivery(delivery)
        except DeliveryNotRetryable as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        return Response({"detail": "Retry queued."}, status=status.HTTP_202_ACCEPTED)
