from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from webhooks.models import WebhookDelivery
from webhooks.services import DeliveryNotRetryable, retry_delivery


class Command(BaseCommand):
    help = "Re-run the delivery cycle for failed webhook deliveries, replaying their original payload."

    def add_arguments(self, parser):
        parser.add_argument("delivery_ids", nargs="+", help="Ids of the deliveries to retry.")

    def handle(self, *args, **options):
        retried = 0
        for delivery_id in options["delivery_ids"]:
            try:
                delivery = WebhookDelivery.objects.get(pk=delivery_id)
            except (WebhookDelivery.DoesNotExist, ValidationError):
                self.stdout.write(self.style.WARNING(f"Delivery {delivery_id} not found."))
                continue

            try:
                retry_delivery(delivery)
            except DeliveryNotRetryable as exc:
                self.stdout.write(self.style.WARNING(str(exc)))
                continue

            retried += 1
            self.stdout.write(self.style.SUCCESS(f"Delivery {delivery.id} queued for retry."))

        if not retried:
            raise CommandError("No deliveries were queued for retry.")
