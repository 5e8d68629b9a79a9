"""
Razorpay order issuing.

`RazorpayGateway` wraps the Razorpay SDK client and exposes the single
call the payment flow needs: creating an order for an amount already
expressed in paise.  SDK and transport failures are translated into the
payments error taxonomy so callers can tell bad credentials, network
trouble and other gateway refusals apart.

Creating an order is not idempotent on Razorpay's side; calling twice
creates two orders.  Callers must check for an existing order id first.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError as RazorpayGatewayError, ServerError

from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    GatewayError,
    GatewayTimeoutError,
    NetworkError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_AMOUNT = 100
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class GatewayOrder:
    order_id: str
    amount: int
    currency: str


def validate_amount(amount, min_amount: int = DEFAULT_MIN_AMOUNT) -> int:
    """Return ``amount`` as an int, or raise ValidationError below the gateway floor."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Amount must be a whole number of paise.")
    if amount < min_amount:
        raise ValidationError(f"Amount must be at least {min_amount} paise.")
    return amount


class RazorpayGateway:
    """Order issuer backed by the Razorpay REST API."""

    def __init__(self, key_id: str, key_secret: str, timeout: float = DEFAULT_TIMEOUT,
                 min_amount: int = DEFAULT_MIN_AMOUNT, client=None):
        self.key_id = key_id
        self.timeout = timeout
        self.min_amount = min_amount
        self._configured = bool(key_id and key_secret)
        if client is None and self._configured:
            client = razorpay.Client(auth=(key_id, key_secret))
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "RazorpayGateway":
        return cls(
            key_id=getattr(settings, "RAZORPAY_KEY_ID", ""),
            key_secret=getattr(settings, "RAZORPAY_KEY_SECRET", ""),
            timeout=getattr(settings, "PAYMENTS_GATEWAY_TIMEOUT", DEFAULT_TIMEOUT),
            min_amount=getattr(settings, "PAYMENTS_MIN_AMOUNT", DEFAULT_MIN_AMOUNT),
        )

    @property
    def configured(self) -> bool:
        return self._configured and self._client is not None

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict | None = None) -> GatewayOrder:
        amount = validate_amount(amount, self.min_amount)
        if not self.configured:
            raise ConfigurationError(debug_detail="RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET not set")

        data = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        logger.info("[payments] creating Razorpay order amount=%s currency=%s receipt=%s", amount, currency, receipt)
        try:
            order = self._client.order.create(data=data, timeout=self.timeout)
        except requests.Timeout as exc:
            raise GatewayTimeoutError(debug_detail=f"Razorpay timeout after {self.timeout}s: {exc}") from exc
        except requests.ConnectionError as exc:
            raise NetworkError(debug_detail=f"Razorpay unreachable: {exc}") from exc
        except BadRequestError as exc:
            message = str(exc)
            if "authentication" in message.lower():
                raise AuthenticationError(debug_detail=f"Razorpay: {message}") from exc
            raise GatewayError(debug_detail=f"Razorpay bad request: {message}") from exc
        except (RazorpayGatewayError, ServerError) as exc:
            raise GatewayError(debug_detail=f"Razorpay: {exc}") from exc
        except (requests.RequestException, ValueError) as exc:
            raise GatewayError(debug_detail=f"Razorpay unexpected response: {exc}") from exc

        order_id = order.get("id")
        if not order_id:
            raise GatewayError(debug_detail=f"Razorpay order response without id: {order!r}")
        logger.info("[payments] Razorpay order %s created", order_id)
        return GatewayOrder(
            order_id=order_id,
            amount=int(order.get("amount", amount)),
            currency=order.get("currency", currency),
        )
