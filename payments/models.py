"""
Database models for the payments app.

A `Payment` records one attempt to pay the fee for one event
registration through Razorpay.  The row is created in the pending state
when the registration is submitted, receives the gateway order id once
an order is issued, and is completed exactly once when an authenticated
confirmation (browser callback or webhook) arrives for that order.
Amounts are stored in minor currency units (paise).
"""
from __future__ import annotations

from django.db import models
from django.db.models import Q

from events.models import Registration


class Payment(models.Model):
    """A single payment attempt for an event registration."""

    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    # another attempt for the same registration completed first
    STATUS_SUPERSEDED = "superseded"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
        (STATUS_SUPERSEDED, "Superseded"),
    ]

    registration = models.ForeignKey(
        Registration,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    amount = models.PositiveIntegerField(help_text="Amount in minor currency units (paise)")
    currency = models.CharField(max_length=8, default="INR")
    gateway_order_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        unique=True,
        help_text="Razorpay order identifier",
    )
    gateway_payment_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Razorpay payment identifier",
    )
    gateway_signature = models.CharField(max_length=128, null=True, blank=True)
    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
    )
    failure_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            # one open payment attempt per registration
            models.UniqueConstraint(
                fields=["registration"],
                condition=Q(status="pending"),
                name="uniq_pending_payment_per_registration",
            )
        ]
        indexes = [
            models.Index(fields=["registration", "status"], name="payments_pa_registr_4e2c91_idx"),
        ]
        ordering = ["-created_at"]

    @property
    def is_completed(self) -> bool:
        return self.status == self.STATUS_COMPLETED

    def __str__(self) -> str:
        return f"Payment {self.id} ({self.get_status_display()})"
