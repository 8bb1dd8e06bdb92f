from __future__ import annotations

import logging
from functools import partial
from typing import Any, Dict, List

from django.db import transaction

from webhooks import tasks
from webhooks.models import WebhookDelivery, WebhookEvent
from webhooks.utils import build_event_payload, serialize_payload

from .ledger import create_delivery, record_delivery_outcome, reset_delivery
from .registry import get_active_endpoints_for_user

logger = logging.getLogger(__name__)

ENQUEUE_FAILURE_MESSAGE = "Failed to enqueue delivery."


class DeliveryNotRetryable(Exception):
    """Raised when a manual retry targets a delivery that has not terminally failed."""


def emit_webhook(owner_id, event: str, payload: Dict[str, Any]) -> List[WebhookDelivery]:
    """
    Fan an event out to every active endpoint of ``owner_id`` subscribed to it.

    Fire-and-forget: a delivery row is written per endpoint and handed to the
    worker once the surrounding transaction commits. Nothing raised here ever
    reaches the caller. Database work runs in savepoints so a failure here
    leaves the caller's transaction usable.
    """
    if event not in WebhookEvent.values:
        logger.warning("Ignoring unknown webhook event %r for user=%s", event, owner_id)
        return []

    try:
        with transaction.atomic():
            endpoints = get_active_endpoints_for_user(owner_id, event)
    except Exception:
        logger.exception("Could not resolve webhook endpoints for user=%s event=%s", owner_id, event)
        return []

    if not endpoints:
        return []

    try:
        payload_json = serialize_payload(build_event_payload(event, payload))
    except (TypeError, ValueError):
        logger.exception("Webhook payload for event=%s user=%s is not JSON serializable", event, owner_id)
        return []

    deliveries = []
    for endpoint in endpoints:
        try:
            with transaction.atomic():
                delivery = create_delivery(endpoint, event, payload_json)
        except Exception:
            logger.exception("Could not create webhook delivery for endpoint=%s event=%s", endpoint.id, event)
            continue
        transaction.on_commit(partial(dispatch_delivery, delivery.id))
        deliveries.append(delivery)

    logger.info("Emitted %s to %s webhook endpoint(s) for user=%s", event, len(deliveries), owner_id)
    return deliveries


def dispatch_delivery(delivery_id) -> None:
    """Hand a delivery to the worker. If the broker refuses it, the row is marked failed so it can be retried."""
    try:
        tasks.deliver_webhook_task.delay(str(delivery_id))
    except Exception:
        logger.exception("Failed to enqueue webhook delivery %s", delivery_id)
        record_delivery_outcome(delivery_id, status_code=None, response=ENQUEUE_FAILURE_MESSAGE, attempts=1)


def retry_delivery(delivery: WebhookDelivery) -> None:
    """
    Replay a terminally failed delivery. The stored payload is sent again as-is;
    only the per-attempt timestamp and signature change.

    The reset only matches rows that are still failed, so concurrent retries of
    the same delivery dispatch a single worker.
    """
    if delivery.is_retryable and reset_delivery(delivery.id):
        logger.info("Manual retry queued for webhook delivery %s", delivery.id)
        transaction.on_commit(partial(dispatch_delivery, delivery.id))
        return

    latest = WebhookDelivery.objects.filter(pk=delivery.id).first()
    current = latest.state if latest is not None else delivery.state
    raise DeliveryNotRetryable(f"Delivery {delivery.id} is {current}; only failed deliveries can be retried.")
