from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Optional, Tuple

from django.db import DatabaseError

from webhooks.models import WebhookEndpoint
from webhooks.utils import generate_signing_secret
from webhooks.vault import VaultError, get_vault

logger = logging.getLogger(__name__)


def list_endpoints(user) -> List[WebhookEndpoint]:
    return list(WebhookEndpoint.objects.filter(user=user).order_by("-created_at"))


def get_active_endpoints_for_user(owner_id, event: str) -> List[WebhookEndpoint]:
    """Active endpoints of ``owner_id`` subscribed to ``event``."""
    endpoints = WebhookEndpoint.objects.filter(user_id=owner_id, is_active=True)
    return [endpoint for endpoint in endpoints if endpoint.subscribes_to(event)]


def create_endpoint(user, *, url: str, events: Iterable[str]) -> Tuple[WebhookEndpoint, str]:
    """
    Register an endpoint and mint its signing secret.

    Returns the endpoint and the plaintext secret. The caller shows the secret
    once; afterwards only the vault holds it.
    """
    raw_secret = generate_signing_secret()
    vault = get_vault()
    secret_ref = vault.store(user.vault_owner_ref, f"webhook-secret-{uuid.uuid4().hex}", raw_secret)

    try:
        endpoint = WebhookEndpoint.objects.create(
            user=user,
            url=url,
            events=list(events),
            secret_ref=secret_ref,
        )
    except DatabaseError:
        _discard_secret(secret_ref)
        raise

    logger.info("Webhook endpoint %s registered for user=%s", endpoint.id, user.pk)
    return endpoint, raw_secret


def update_endpoint(
    endpoint: WebhookEndpoint,
    *,
    url: Optional[str] = None,
    events: Optional[Iterable[str]] = None,
    is_active: Optional[bool] = None,
) -> WebhookEndpoint:
    update_fields = ["updated_at"]
    if url is not None:
        endpoint.url = url
        update_fields.append("url")
    if events is not None:
        endpoint.events = list(events)
        update_fields.append("events")
    if is_active is not None:
        endpoint.is_active = is_active
        update_fields.append("is_active")
    endpoint.save(update_fields=update_fields)
    return endpoint


def delete_endpoint(endpoint: WebhookEndpoint) -> None:
    """Remove the vault secret, then the endpoint and its deliveries."""
    _discard_secret(endpoint.secret_ref)
    endpoint_id = endpoint.id
    endpoint.delete()
    logger.info("Webhook endpoint %s deleted", endpoint_id)


def _discard_secret(secret_ref: str) -> None:
    try:
        get_vault().delete(secret_ref)
    except VaultError as exc:
        logger.error("Failed to delete vault secret %s: %s", secret_ref, exc)
