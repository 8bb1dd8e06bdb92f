import hmac
import json
import secrets
from hashlib import sha256

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone


def generate_signing_secret() -> str:
    return secrets.token_hex(32)


def build_event_payload(event: str, data: dict, occurred_at=None) -> dict:
    occurred_at = occurred_at or timezone.now()
    timestamp = occurred_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return {"event": event, "timestamp": timestamp, "data": data}


def serialize_payload(payload: dict) -> str:
    return json.dumps(payload, cls=DjangoJSONEncoder, separators=(",", ":"), ensure_ascii=False)


def compute_signature(secret: str, timestamp: str, body: str) -> str:
    message = f"{timestamp}.{body}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, sha256).hexdigest()


def verify_signature(secret: str, timestamp: str, body: str, signature_header: str) -> bool:
    """Receiver-side check of an ``sha256=<hex>`` signature header."""
    if not signature_header or not signature_header.startswith("sha256="):
        return False
    expected = compute_signature(secret, timestamp, body)
    return hmac.compare_digest(signature_header[len("sha256="):], expected)


def signature_headers(secret: str, timestamp: str, body: str) -> dict:
    prefix = getattr(settings, "WEBHOOK_HEADER_PREFIX", "X-Bio")
    return {
        "Content-Type": "application/json",
        f"{prefix}-Timestamp": timestamp,
        f"{prefix}-Signature": f"sha256={compute_signature(secret, timestamp, body)}",
        "User-Agent": getattr(settings, "WEBHOOK_USER_AGENT", "biohasl.ink-Webhook/1.0"),
    }


def truncate_response(text) -> str:
    limit = int(getattr(settings, "WEBHOOK_RESPONSE_MAX_LENGTH", 1000))
    return (text or "")[:limit]
