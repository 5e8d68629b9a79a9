"""
HMAC-SHA256 signatures used by Razorpay.

The checkout callback signs ``"<order_id>|<payment_id>"`` with the API
key secret; webhooks sign the raw request body with the webhook secret.
"""
from __future__ import annotations

import hashlib
import hmac


def _to_bytes(value) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


def checkout_message(order_id: str, payment_id: str) -> bytes:
    return f"{order_id}|{payment_id}".encode("utf-8")


def compute_signature(message, secret) -> str:
    """Lowercase hex HMAC-SHA256 of ``message`` under ``secret``."""
    return hmac.new(_to_bytes(secret), _to_bytes(message), hashlib.sha256).hexdigest()


def verify_signature(message, signature, secret) -> bool:
    """Constant-time check of ``signature`` against the expected HMAC.

    Returns False for any mismatch, including a missing or non-string
    signature; never raises.
    """
    if not secret or not isinstance(signature, str) or not signature:
        return False
    expected = compute_signature(message, secret)
    try:
        return hmac.compare_digest(expected, signature)
    except TypeError:
        # non-ASCII input
        return False
