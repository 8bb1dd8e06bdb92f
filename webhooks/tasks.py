import logging

from celery import shared_task

from webhooks.models import WebhookEndpoint
from webhooks.services.delivery import deliver_webhook

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def deliver_webhook_task(delivery_id: str):
    endpoint = WebhookEndpoint.objects.filter(deliveries__id=delivery_id).first()
    if endpoint is None:
        logger.warning("No endpoint found for webhook delivery %s, skipping", delivery_id)
        return
    deliver_webhook(delivery_id, endpoint)
