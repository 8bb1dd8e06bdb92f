from __future__ import annotations

import logging
from typing import List, Optional

from django.db import DatabaseError

from webhooks.models import WebhookDelivery, WebhookEndpoint
from webhooks.utils import truncate_response

logger = logging.getLogger(__name__)


def create_delivery(endpoint: WebhookEndpoint, event: str, payload_json: str) -> WebhookDelivery:
    return WebhookDelivery.objects.create(endpoint=endpoint, event=event, payload_json=payload_json)


def record_delivery_outcome(
    delivery_id,
    *,
    status_code: Optional[int],
    response: str,
    attempts: int,
    delivered_at=None,
) -> bool:
    """
    Write the outcome of an attempt cycle onto its delivery row.
    Failures are logged and swallowed so the worker never crashes on them.
    """
    try:
        updated = WebhookDelivery.objects.filter(pk=delivery_id).update(
            status_code=status_code,
            response=truncate_response(response),
            attempts=attempts,
            delivered_at=delivered_at,
        )
    except DatabaseError:
        logger.exception("Could not record outcome for webhook delivery %s", delivery_id)
        return False

    if not updated:
        logger.warning("Webhook delivery %s vanished before its outcome was recorded", delivery_id)
    return bool(updated)


def reset_delivery(delivery_id) -> bool:
    """Clear the outcome of a failed delivery. Returns False if the row is not (or no longer) failed."""
    updated = WebhookDelivery.objects.filter(pk=delivery_id, delivered_at__isnull=True, attempts__gte=1).update(
        status_code=None,
        response="",
        attempts=0,
        delivered_at=None,
    )
    return bool(updated)


def recent_deliveries(endpoint: WebhookEndpoint, limit: int = 50) -> List[WebhookDelivery]:
    return list(WebhookDelivery.objects.filter(endpoint=endpoint).order_by("-created_at")[:limit])
