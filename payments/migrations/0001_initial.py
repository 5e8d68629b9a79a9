"""
Initial migration for the payments app.

Creates the payment table keyed to event registrations, with a unique
Razorpay order id and at most one pending payment per registration.
"""
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("events", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.PositiveIntegerField(help_text="Amount in minor currency units (paise)")),
                ("currency", models.CharField(default="INR", max_length=8)),
                (
                    "gateway_order_id",
                    models.CharField(
                        blank=True,
                        help_text="Razorpay order identifier",
                        max_length=64,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "gateway_payment_id",
                    models.CharField(
                        blank=True,
                        help_text="Razorpay payment identifier",
                        max_length=64,
                        null=True,
                    ),
                ),
                ("gateway_signature", models.CharField(blank=True, max_length=128, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("superseded", "Superseded"),
                        ],
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("failure_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "registration",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to="events.registration",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["registration", "status"], name="payments_pa_registr_4e2c91_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "pending")),
                        fields=("registration",),
                        name="uniq_pending_payment_per_registration",
                    )
                ],
            },
        ),
    ]
