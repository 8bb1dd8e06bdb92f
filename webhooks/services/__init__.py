from .delivery import deliver_webhook
from .emitter import DeliveryNotRetryable, dispatch_delivery, emit_webhook, retry_delivery
from .ledger import create_delivery, recent_deliveries, record_delivery_outcome, reset_delivery
from .registry import (
    create_endpoint,
    delete_endpoint,
    get_active_endpoints_for_user,
    list_endpoints,
    update_endpoint,
)

__all__ = [
    "DeliveryNotRetryable",
    "create_delivery",
    "create_endpoint",
    "delete_endpoint",
    "deliver_webhook",
    "dispatch_delivery",
    "emit_webhook",
    "get_active_endpoints_for_user",
    "list_endpoints",
    "recent_deliveries",
    "record_delivery_outcome",
    "reset_delivery",
    "retry_delivery",
    "update_endpoint",
]
