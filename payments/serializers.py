"""
Serializers for the payments app.

Request serializers only check shape (presence and types); amount,
ownership and signature checks happen in the reconciliation flow so the
same rules apply whichever endpoint is used.  Payment rows are exposed
read-only and without the stored gateway signature.
"""
from __future__ import annotations

from django.conf import settings
from rest_framework import serializers

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    """Serializer for Payment objects (read-only)."""

    registration_id = serializers.IntegerField(source="registration.id", read_only=True)
    event_id = serializers.IntegerField(source="registration.event_id", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "registration_id",
            "event_id",
            "amount",
            "currency",
            "gateway_order_id",
            "gateway_payment_id",
            "status",
            "failure_reason",
            "created_at",
            "verified_at",
        ]
        read_only_fields = fields


class CreateOrderRequestSerializer(serializers.Serializer):
    registration_id = serializers.IntegerField()
    amount = serializers.IntegerField()
    currency = serializers.CharField(max_length=8, required=False)

    def validate_currency(self, value):
        return (value or settings.PAYMENTS_DEFAULT_CURRENCY).upper()


class VerifyPaymentRequestSerializer(serializers.Serializer):
    """Fields returned by Razorpay Checkout's success handler."""

    registration_id = serializers.IntegerField()
    razorpay_order_id = serializers.CharField(max_length=64)
    razorpay_payment_id = serializers.CharField(max_length=64)
    razorpay_signature = serializers.CharField(max_length=128)


class PaymentFailureRequestSerializer(serializers.Serializer):
    razorpay_order_id = serializers.CharField(max_length=64)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
