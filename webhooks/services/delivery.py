from __future__ import annotations

import logging
import time

import httpx
from django.conf import settings
from django.utils import timezone

from webhooks.models import WebhookDelivery, WebhookEndpoint
from webhooks.utils import signature_headers
from webhooks.vault import get_vault

from .ledger import record_delivery_outcome

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = max(1, int(getattr(settings, "WEBHOOK_MAX_ATTEMPTS", 3)))
BASE_BACKOFF_MS = int(getattr(settings, "WEBHOOK_BASE_BACKOFF_MS", 1000))
REQUEST_TIMEOUT_SECONDS = float(getattr(settings, "WEBHOOK_REQUEST_TIMEOUT_SECONDS", 10))

VAULT_FAILURE_MESSAGE = "Failed to retrieve signing secret from vault."


def backoff_delay_ms(attempt: int) -> int:
    """Delay before ``attempt`` (1-based): 1000ms, 2000ms, 4000ms, ..."""
    if attempt <= 1:
        return 0
    return BASE_BACKOFF_MS * 2 ** (attempt - 2)


def deliver_webhook(delivery_id, endpoint: WebhookEndpoint) -> None:
    """
    Sign and POST one delivery's payload to its endpoint, retrying transport
    failures with exponential backoff, then write the outcome to the ledger.

    The signing secret is read fresh from the vault and only lives for the
    duration of this call. A vault failure is terminal and is never retried.
    """
    try:
        payload_json = WebhookDelivery.objects.values_list("payload_json", flat=True).get(pk=delivery_id)
    except WebhookDelivery.DoesNotExist:
        logger.warning("Webhook delivery %s no longer exists, skipping", delivery_id)
        return

    # Any failure to resolve the secret, a misconfigured backend included, is
    # terminal for this cycle and recorded so the row stays retryable.
    try:
        secret = get_vault().read(endpoint.secret_ref)
    except Exception as exc:
        logger.error(
            "Signing secret unavailable for endpoint=%s delivery=%s: %s",
            endpoint.id,
            delivery_id,
            exc,
        )
        record_delivery_outcome(delivery_id, status_code=None, response=VAULT_FAILURE_MESSAGE, attempts=1)
        return

    body = payload_json.encode("utf-8")
    try:
        with _build_client() as client:
            for attempt in range(1, MAX_ATTEMPTS + 1):
                if attempt > 1:
                    _sleep(backoff_delay_ms(attempt) / 1000)

                timestamp = str(int(time.time() * 1000))
                headers = signature_headers(secret, timestamp, payload_json)
                status_code = None

                try:
                    response = client.post(endpoint.url, content=body, headers=headers)
                except httpx.HTTPError as exc:
                    response_text = str(exc) or exc.__class__.__name__
                else:
                    status_code = response.status_code
                    response_text = response.text
                    if response.is_success:
                        logger.info(
                            "Webhook delivery %s succeeded on attempt %s/%s (HTTP %s)",
                            delivery_id,
                            attempt,
                            MAX_ATTEMPTS,
                            status_code,
                        )
                        record_delivery_outcome(
                            delivery_id,
                            status_code=status_code,
                            response=response_text,
                            attempts=attempt,
                            delivered_at=timezone.now(),
                        )
                        return

                logger.warning(
                    "Webhook delivery %s attempt %s/%s to %s failed: %s",
                    delivery_id,
                    attempt,
                    MAX_ATTEMPTS,
                    endpoint.url,
                    f"HTTP {status_code}" if status_code is not None else response_text,
                )
                if attempt == MAX_ATTEMPTS:
                    record_delivery_outcome(
                        delivery_id,
                        status_code=status_code,
                        response=response_text,
                        attempts=MAX_ATTEMPTS,
                    )
    finally:
        del secret


def _build_client() -> httpx.Client:
    return httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS)


def _sleep(duration: float) -> None:
    """Expose sleep for easier mocking in tests."""
    time.sleep(duration)
