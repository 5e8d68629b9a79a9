"""
Payment reconciliation for event registrations.

Three entry points drive a registration's payment from "pending" to
"completed":

* ``create_order``: the registrant asks for a Razorpay order for the
  pending payment row of their registration.
* ``verify_payment``: the browser reports the signed result of the
  hosted checkout (``razorpay_order_id``, ``razorpay_payment_id``,
  ``razorpay_signature``).
* ``handle_webhook``: Razorpay posts a signed ``payment.captured`` or
  ``payment.authorized`` event to the server.

The browser callback and the webhook are two independent, unordered
deliveries of the same fact.  Both end in ``_complete``, whose
``mark_completed`` is a single conditional UPDATE: the first delivery
performs the transition and marks the registration paid, every later
delivery is a no-op.  No locks are taken.  The completing delivery also
supersedes any other open attempt for the same registration, and only
the delivery that actually marks the registration paid queues the
confirmation email.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import partial

from django.db import transaction
from django.utils import timezone

from events.models import Registration
from events.registration_state import (
    mark_registration_paid,
    mark_registration_payment_failed,
    reopen_registration_payment,
)
from . import store
from .exceptions import (
    ConfigurationError,
    InvalidStateError,
    NotFoundError,
    SignatureMismatchError,
    ValidationError,
)
from .gateway import DEFAULT_MIN_AMOUNT, validate_amount
from .models import Payment
from .signatures import checkout_message, verify_signature

logger = logging.getLogger(__name__)

HANDLED_WEBHOOK_EVENTS = frozenset({"payment.captured", "payment.authorized"})


@dataclass(frozen=True)
class OrderResult:
    order_id: str
    amount: int
    currency: str
    created: bool = True


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    already_verified: bool = False
    payment_id: int | None = None


@dataclass(frozen=True)
class WebhookResult:
    handled: bool
    reason: str = ""


def queue_payment_confirmation(registration_id) -> None:
    """Send the confirmation email once the completing transaction commits."""
    from .tasks import send_payment_confirmation

    transaction.on_commit(partial(send_payment_confirmation.delay, registration_id))


def _owned_by(registration: Registration, user) -> bool:
    if user is None:
        return True
    return registration.user_id == user.pk or bool(getattr(user, "is_staff", False))


class ReconciliationCoordinator:
    """Ties order issuing, signature checks and state transitions together."""

    def __init__(self, gateway, checkout_secret: str, webhook_secret: str,
                 min_amount: int = DEFAULT_MIN_AMOUNT, enforce_stored_amount: bool = True,
                 on_paid=queue_payment_confirmation):
        self.gateway = gateway
        self.checkout_secret = checkout_secret
        self.webhook_secret = webhook_secret
        self.min_amount = min_amount
        self.enforce_stored_amount = enforce_stored_amount
        self.on_paid = on_paid

    @classmethod
    def from_settings(cls, gateway, settings, **kwargs) -> "ReconciliationCoordinator":
        return cls(
            gateway=gateway,
            checkout_secret=getattr(settings, "RAZORPAY_KEY_SECRET", ""),
            webhook_secret=getattr(settings, "RAZORPAY_WEBHOOK_SECRET", ""),
            min_amount=getattr(settings, "PAYMENTS_MIN_AMOUNT", DEFAULT_MIN_AMOUNT),
            enforce_stored_amount=getattr(settings, "PAYMENTS_ENFORCE_STORED_AMOUNT", True),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # payment attempts
    # ------------------------------------------------------------------
    def prepare_payment(self, registration: Registration) -> Payment:
        """Return the pending payment for ``registration``, creating one for a retry."""
        if not registration.event.is_paid:
            raise InvalidStateError("This event does not require payment.")
        if registration.payment_status == Registration.PAYMENT_COMPLETED:
            raise InvalidStateError("This registration has already been paid for.")
        payment, created = store.ensure_pending_payment(registration)
        if created:
            reopen_registration_payment(registration.pk)
        return payment

    # ------------------------------------------------------------------
    # (a) order creation
    # ------------------------------------------------------------------
    def create_order(self, registration_id, claimed_amount, currency: str | None = None, user=None) -> OrderResult:
        registration = (
            Registration.objects.select_related("event").filter(pk=registration_id).first()
        )
        if registration is None or not _owned_by(registration, user):
            raise NotFoundError()
        if registration.payment_status == Registration.PAYMENT_COMPLETED:
            raise InvalidStateError("This registration has already been paid for.")

        payment = store.find_pending_payment_for_registration(registration.pk)
        if payment is None:
            raise InvalidStateError()

        claimed_amount = validate_amount(claimed_amount, self.min_amount)
        currency = (currency or payment.currency).upper()
        if self.enforce_stored_amount:
            if claimed_amount != payment.amount:
                logger.warning(
                    "[payments] registration %s claimed amount %s, stored amount is %s",
                    registration.pk, claimed_amount, payment.amount,
                )
                raise ValidationError("Amount does not match the registration fee.")
            if currency != payment.currency.upper():
                raise ValidationError("Currency does not match the registration fee.")
            charge_amount = payment.amount
        else:
            charge_amount = claimed_amount

        if payment.gateway_order_id:
            logger.info(
                "[payments] reusing order %s for payment %s", payment.gateway_order_id, payment.pk
            )
            return OrderResult(payment.gateway_order_id, payment.amount, payment.currency, created=False)

        order = self.gateway.create_order(
            charge_amount,
            currency,
            receipt=f"reg_{registration.pk}",
            notes={"registration_id": str(registration.pk), "payment_id": str(payment.pk)},
        )

        if not store.attach_gateway_order(payment.pk, order.order_id):
            payment.refresh_from_db(fields=["gateway_order_id"])
            logger.warning(
                "[payments] payment %s already had order %s; gateway order %s is orphaned",
                payment.pk, payment.gateway_order_id, order.order_id,
            )
            return OrderResult(payment.gateway_order_id, payment.amount, payment.currency, created=False)

        return OrderResult(order.order_id, order.amount, order.currency)

    # ------------------------------------------------------------------
    # (b) browser verification
    # ------------------------------------------------------------------
    def verify_payment(self, gateway_order_id: str, gateway_payment_id: str, signature: str,
                       registration_id=None, user=None) -> VerificationResult:
        if not self.checkout_secret:
            raise ConfigurationError(debug_detail="RAZORPAY_KEY_SECRET not set")

        message = checkout_message(gateway_order_id, gateway_payment_id)
        if not verify_signature(message, signature, self.checkout_secret):
            logger.warning("[payments] checkout signature mismatch for order %s", gateway_order_id)
            raise SignatureMismatchError()

        payment = store.find_by_gateway_order_id(gateway_order_id)
        if payment is None:
            raise NotFoundError()
        if registration_id is not None and str(payment.registration_id) != str(registration_id):
            raise NotFoundError()
        if user is not None and not _owned_by(payment.registration, user):
            raise NotFoundError()

        if payment.is_completed:
            return VerificationResult(success=True, already_verified=True, payment_id=payment.pk)

        changed = self._complete(payment, gateway_payment_id, signature, source="checkout")
        return VerificationResult(success=True, already_verified=not changed, payment_id=payment.pk)

    # ------------------------------------------------------------------
    # (c) webhook
    # ------------------------------------------------------------------
    def handle_webhook(self, raw_body: bytes, header_signature: str | None) -> WebhookResult:
        """Authenticate and apply a Razorpay webhook.

        Raises only for a missing/invalid signature or an undecodable
        body.  Once those checks pass every outcome is reported as
        handled or ignored so Razorpay stops retrying.
        """
        if not self.webhook_secret:
            logger.error("[payments] RAZORPAY_WEBHOOK_SECRET not set; rejecting webhook")
            raise SignatureMismatchError("Webhook rejected.")
        if not header_signature:
            raise SignatureMismatchError("Webhook rejected.")
        if not verify_signature(raw_body, header_signature, self.webhook_secret):
            logger.warning("[payments] webhook signature mismatch")
            raise SignatureMismatchError("Webhook rejected.")

        try:
            event = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationError("Malformed webhook payload.")
        if not isinstance(event, dict):
            raise ValidationError("Malformed webhook payload.")

        try:
            return self._apply_webhook_event(event)
        except Exception:
            logger.exception("[payments] failed to apply webhook event %r", event.get("event"))
            return WebhookResult(handled=False, reason="error")

    def _apply_webhook_event(self, event: dict) -> WebhookResult:
        event_type = event.get("event")
        if event_type not in HANDLED_WEBHOOK_EVENTS:
            logger.debug("[payments] ignoring webhook event %r", event_type)
            return WebhookResult(handled=False, reason="ignored_event")

        payment_obj = (event.get("payload") or {}).get("payment") or {}
        entity = payment_obj.get("entity", payment_obj) if isinstance(payment_obj, dict) else {}
        if not isinstance(entity, dict):
            entity = {}
        order_id = entity.get("order_id")
        gateway_payment_id = entity.get("id")
        if not order_id or not gateway_payment_id:
            logger.info("[payments] webhook %s without order/payment id; ignored", event_type)
            return WebhookResult(handled=False, reason="missing_ids")

        payment = store.find_by_gateway_order_id(order_id)
        if payment is None:
            logger.info("[payments] webhook for unknown order %s; ignored", order_id)
            return WebhookResult(handled=False, reason="unknown_order")
        if payment.is_completed:
            return WebhookResult(handled=False, reason="already_completed")

        changed = self._complete(payment, gateway_payment_id, None, source=f"webhook:{event_type}")
        return WebhookResult(handled=changed, reason="" if changed else "already_completed")

    # ------------------------------------------------------------------
    # checkout failure reported by the browser
    # ------------------------------------------------------------------
    def report_failure(self, gateway_order_id: str, reason: str = "", user=None) -> bool:
        payment = store.find_by_gateway_order_id(gateway_order_id)
        if payment is None or not _owned_by(payment.registration, user):
            raise NotFoundError()
        with transaction.atomic():
            changed = store.mark_failed(payment.pk, reason)
            if changed:
                mark_registration_payment_failed(payment.registration_id)
        if changed:
            logger.info("[payments] payment %s failed: %s", payment.pk, reason or "no reason given")
        return changed

    # ------------------------------------------------------------------
    def _complete(self, payment: Payment, gateway_payment_id: str, signature: str | None, source: str) -> bool:
        with transaction.atomic():
            changed = store.mark_completed(
                payment.pk, gateway_payment_id, signature, verified_at=timezone.now()
            )
            registration_paid = False
            if changed:
                store.supersede_sibling_payments(payment.registration_id, payment.pk)
                registration_paid = mark_registration_paid(payment.registration_id)
                if registration_paid and self.on_paid is not None:
                    self.on_paid(payment.registration_id)
        if changed and not registration_paid:
            logger.warning(
                "[payments] payment %s completed via %s but registration %s was already paid; "
                "gateway payment %s is a duplicate charge",
                payment.pk, source, payment.registration_id, gateway_payment_id,
            )
        elif changed:
            logger.info(
                "[payments] payment %s completed via %s (gateway payment %s)",
                payment.pk, source, gateway_payment_id,
            )
        else:
            logger.info("[payments] payment %s already completed; %s delivery ignored", payment.pk, source)
        return changed
