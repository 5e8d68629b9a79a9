"""
Celery tasks for the payments app.

These tasks keep slow side effects out of the request/response cycle
and out of the webhook's response window.  The reconciliation flow
queues `send_payment_confirmation` only for the delivery that actually
completed a payment, so replayed confirmations never send a second
email.
"""
from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from events.models import Registration
from .models import Payment

logger = logging.getLogger(__name__)


@shared_task
def send_payment_confirmation(registration_id: int) -> bool:
    """Email the registrant that their payment was received.

    Args:
        registration_id: The registration whose payment just completed.

    Returns:
        True when an email was handed to the mail backend.
    """
    registration = (
        Registration.objects.select_related("event", "user").filter(pk=registration_id).first()
    )
    if registration is None:
        return False
    email = registration.user.email
    if not email:
        logger.info("[payments] registration %s has no email; confirmation skipped", registration_id)
        return False

    payment = (
        Payment.objects
        .filter(registration_id=registration_id, status=Payment.STATUS_COMPLETED)
        .order_by("-verified_at")
        .first()
    )
    amount = f"{payment.amount / 100:.2f} {payment.currency}" if payment else ""
    event = registration.event
    send_mail(
        subject=f"Payment received for {event.name}",
        message=(
            f"Hi {registration.user.get_full_name() or registration.user.username},\n\n"
            f"We have received your payment {amount} for {event.name}.\n"
            "Your registration will be reviewed by the organizers.\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[email],
        fail_silently=False,
    )
    return True
