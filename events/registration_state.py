"""
State transitions for event registrations.

A registration carries two independent fields.  ``payment_status`` is
driven only by payment reconciliation::

    pending -> completed
    pending -> failed -> completed   (a later payment succeeds)

``status`` is driven only by staff review (pending -> accepted/rejected,
and staff may revise a decision).  Payment transitions are single
conditional UPDATE statements so concurrent reconciliation paths cannot
double-apply them.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from .models import ActivityLog, Registration

logger = logging.getLogger(__name__)

REVIEW_STATUSES = (Registration.STATUS_ACCEPTED, Registration.STATUS_REJECTED)


def mark_registration_paid(registration_id) -> bool:
    """Set ``payment_status`` to completed.

    Callers invoke this only after the payment row itself reported a real
    pending -> completed change.  Returns True when the registration row
    changed.
    """
    changed = (
        Registration.objects
        .filter(pk=registration_id)
        .exclude(payment_status=Registration.PAYMENT_COMPLETED)
        .update(payment_status=Registration.PAYMENT_COMPLETED, updated_at=timezone.now())
    )
    if changed:
        logger.info("[events] registration %s marked paid", registration_id)
    return bool(changed)


def mark_registration_payment_failed(registration_id) -> bool:
    """Move ``payment_status`` from pending to failed; never downgrades completed."""
    changed = (
        Registration.objects
        .filter(pk=registration_id, payment_status=Registration.PAYMENT_PENDING)
        .update(payment_status=Registration.PAYMENT_FAILED, updated_at=timezone.now())
    )
    return bool(changed)


def reopen_registration_payment(registration_id) -> bool:
    """Move a failed ``payment_status`` back to pending when a new attempt starts."""
    changed = (
        Registration.objects
        .filter(pk=registration_id, payment_status=Registration.PAYMENT_FAILED)
        .update(payment_status=Registration.PAYMENT_PENDING, updated_at=timezone.now())
    )
    return bool(changed)


def review_registration(registration: Registration, status: str, reviewer, notes: str = "") -> Registration:
    """Apply a staff decision to ``status`` and record it in the activity log.

    ``payment_status`` is left untouched.
    """
    if status not in REVIEW_STATUSES:
        raise ValueError(f"Unsupported review status: {status!r}")

    with transaction.atomic():
        registration.status = status
        registration.status_notes = notes or ""
        registration.status_updated_by = reviewer
        registration.status_updated_at = timezone.now()
        registration.save(
            update_fields=["status", "status_notes", "status_updated_by", "status_updated_at", "updated_at"]
        )
        ActivityLog.objects.create(
            actor=reviewer,
            action=f"{'accept' if status == Registration.STATUS_ACCEPTED else 'reject'} registration",
            entity_type="registration",
            entity_id=str(registration.pk),
            metadata={"event_id": registration.event_id},
        )
    logger.info(
        "[events] registration %s %s by user %s", registration.pk, status, getattr(reviewer, "pk", None)
    )
    return registration


def accept_registration(registration: Registration, reviewer, notes: str = "") -> Registration:
    return review_registration(registration, Registration.STATUS_ACCEPTED, reviewer, notes)


def reject_registration(registration: Registration, reviewer, notes: str = "") -> Registration:
    return review_registration(registration, Registration.STATUS_REJECTED, reviewer, notes)
