"""
Models for the events app.

An `Event` is published by an organizer with an optional registration
fee (in paise) and a set of custom `FormField` definitions.  Attendees
submit a `Registration` holding their form answers.  A registration has
two independent state fields: `status`, owned by staff review, and
`payment_status`, owned by the payment reconciliation flow.  Staff
review actions are recorded in `ActivityLog`.
"""

from django.conf import settings
from django.db import models


class Event(models.Model):
    """An event attendees can register for, optionally against a fee."""

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    event_date = models.DateTimeField(null=True, blank=True)
    registration_deadline = models.DateTimeField(null=True, blank=True)
    fee_amount = models.PositiveIntegerField(
        default=0,
        help_text="Registration fee in minor currency units (paise); 0 means free",
    )
    currency = models.CharField(max_length=8, default="INR")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="created_events",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    @property
    def is_paid(self) -> bool:
        return self.fee_amount > 0

    def __str__(self) -> str:
        return self.name


class FormField(models.Model):
    """One question on an event's registration form."""

    TYPE_TEXT = "text"
    TYPE_EMAIL = "email"
    TYPE_PHONE = "phone"
    TYPE_TEXTAREA = "textarea"
    TYPE_SELECT = "select"
    TYPE_NUMBER = "number"
    TYPE_CHOICES = [
        (TYPE_TEXT, "Text"),
        (TYPE_EMAIL, "Email"),
        (TYPE_PHONE, "Phone"),
        (TYPE_TEXTAREA, "Textarea"),
        (TYPE_SELECT, "Select"),
        (TYPE_NUMBER, "Number"),
    ]

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="form_fields")
    label = models.CharField(max_length=255)
    field_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_TEXT)
    required = models.BooleanField(default=False)
    options = models.JSONField(default=list, blank=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]

    def __str__(self) -> str:
        return f"{self.label} ({self.field_type})"


class Registration(models.Model):
    """A single user's registration for a single event."""

    STATUS_PENDING = "pending"
    STATUS_ACCEPTED = "accepted"
    STATUS_REJECTED = "rejected"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_ACCEPTED, "Accepted"),
        (STATUS_REJECTED, "Rejected"),
    ]

    PAYMENT_PENDING = "pending"
    PAYMENT_COMPLETED = "completed"
    PAYMENT_FAILED = "failed"
    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_COMPLETED, "Completed"),
        (PAYMENT_FAILED, "Failed"),
    ]

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="registrations")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="event_registrations",
    )
    form_data = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    payment_status = models.CharField(
        max_length=10,
        choices=PAYMENT_STATUS_CHOICES,
        default=PAYMENT_PENDING,
    )
    status_notes = models.TextField(blank=True)
    status_updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reviewed_registrations",
    )
    status_updated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("event", "user")
        indexes = [
            models.Index(fields=["event", "status"], name="events_regi_event_i_7c1a2b_idx"),
            models.Index(fields=["user"], name="events_regi_user_id_3f9d4e_idx"),
        ]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.user_id} -> {self.event_id} ({self.status}/{self.payment_status})"


class ActivityLog(models.Model):
    """Audit trail of staff actions on registrations."""

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name="activity_logs",
    )
    action = models.CharField(max_length=64)
    entity_type = models.CharField(max_length=32)
    entity_id = models.CharField(max_length=64)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["entity_type", "entity_id"], name="events_acti_entity__5b8e1c_idx")]

    def __str__(self) -> str:
        return f"{self.action} {self.entity_type}:{self.entity_id}"
