"""
Data access for payment rows.

Every write here is one conditional UPDATE (or one INSERT) keyed by the
primary key or the unique Razorpay order id, and reports whether a row
actually changed.  The reconciliation flow relies on that count instead
of locks: whichever confirmation reaches ``mark_completed`` first wins,
later ones see zero rows affected.
"""
from __future__ import annotations

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from events.models import Registration
from .models import Payment

logger = logging.getLogger(__name__)


def find_pending_payment_for_registration(registration_id) -> Payment | None:
    return (
        Payment.objects
        .filter(registration_id=registration_id, status=Payment.STATUS_PENDING)
        .order_by("-created_at")
        .first()
    )


def find_by_gateway_order_id(gateway_order_id: str) -> Payment | None:
    if not gateway_order_id:
        return None
    return Payment.objects.filter(gateway_order_id=gateway_order_id).first()


def latest_payment_for_registration(registration_id) -> Payment | None:
    return Payment.objects.filter(registration_id=registration_id).order_by("-created_at").first()


def create_pending_payment(registration: Registration, amount: int, currency: str) -> Payment:
    return Payment.objects.create(
        registration=registration,
        amount=amount,
        currency=currency,
        status=Payment.STATUS_PENDING,
    )


def ensure_pending_payment(registration: Registration) -> tuple[Payment, bool]:
    """Find-or-create the pending payment for a paid registration.

    The amount is the event fee at the time the row is created.  Returns
    ``(payment, created)``.
    """
    existing = find_pending_payment_for_registration(registration.pk)
    if existing is not None:
        return existing, False
    event = registration.event
    try:
        with transaction.atomic():
            payment = create_pending_payment(registration, event.fee_amount, event.currency)
    except IntegrityError:
        # a concurrent request created it first
        return find_pending_payment_for_registration(registration.pk), False
    logger.info("[payments] pending payment %s created for registration %s", payment.pk, registration.pk)
    return payment, True


def attach_gateway_order(payment_id, gateway_order_id: str) -> bool:
    """Store the order id on a payment that has none yet; never overwrites."""
    changed = (
        Payment.objects
        .filter(pk=payment_id, gateway_order_id__isnull=True)
        .update(gateway_order_id=gateway_order_id, updated_at=timezone.now())
    )
    return bool(changed)


def mark_completed(payment_id, gateway_payment_id: str, signature: str | None = None, verified_at=None) -> bool:
    """Complete a payment unless it is already completed.

    Returns True only for the call that performed the transition.
    """
    values = {
        "status": Payment.STATUS_COMPLETED,
        "gateway_payment_id": gateway_payment_id,
        "verified_at": verified_at or timezone.now(),
        "failure_reason": "",
        "updated_at": timezone.now(),
    }
    if signature:
        values["gateway_signature"] = signature
    changed = (
        Payment.objects
        .filter(pk=payment_id)
        .exclude(status=Payment.STATUS_COMPLETED)
        .update(**values)
    )
    return bool(changed)


def mark_failed(payment_id, reason: str = "") -> bool:
    """Fail a pending payment.  Completed payments are never reversed."""
    changed = (
        Payment.objects
        .filter(pk=payment_id, status=Payment.STATUS_PENDING)
        .update(
            status=Payment.STATUS_FAILED,
            failure_reason=(reason or "")[:255],
            updated_at=timezone.now(),
        )
    )
    return bool(changed)


def supersede_sibling_payments(registration_id, completed_payment_id) -> int:
    """Close every other open attempt once one payment for the registration completes.

    Pending and failed siblings become superseded so no further order can
    be issued for them.  Completed siblings are left alone.  Returns the
    number of rows changed.
    """
    changed = (
        Payment.objects
        .filter(
            registration_id=registration_id,
            status__in=[Payment.STATUS_PENDING, Payment.STATUS_FAILED],
        )
        .exclude(pk=completed_payment_id)
        .update(status=Payment.STATUS_SUPERSEDED, updated_at=timezone.now())
    )
    if changed:
        logger.info(
            "[payments] %s sibling payment(s) of payment %s superseded", changed, completed_payment_id
        )
    return changed
