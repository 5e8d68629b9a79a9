"""
Views for the payments app.

This module exposes the endpoints the checkout page talks to (order
creation, verification of the signed checkout result, failure
reporting), a read-only listing of payments, and the Razorpay webhook.
All endpoints require authentication except the webhook, which relies
solely on signature verification over the raw request body.
"""
from __future__ import annotations

import logging

from django.apps import apps
from django.conf import settings
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt

from rest_framework import permissions, status, views, viewsets
from rest_framework.response import Response

from .exceptions import SignatureMismatchError
from .models import Payment
from .reconciliation import ReconciliationCoordinator
from .serializers import (
    CreateOrderRequestSerializer,
    PaymentFailureRequestSerializer,
    PaymentSerializer,
    VerifyPaymentRequestSerializer,
)

logger = logging.getLogger(__name__)


class CoordinatorMixin:
    """Builds the reconciliation coordinator around the process-wide gateway client."""

    def get_coordinator(self) -> ReconciliationCoordinator:
        gateway = apps.get_app_config("payments").gateway
        return ReconciliationCoordinator.from_settings(gateway, settings)


class PaymentViewSet(viewsets.ReadOnlyModelViewSet):
    """Payments for the current user's registrations; staff see all."""

    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        qs = Payment.objects.select_related("registration")
        user = self.request.user
        if not user.is_staff:
            qs = qs.filter(registration__user=user)
        registration_id = self.request.query_params.get("registration")
        if registration_id:
            qs = qs.filter(registration_id=registration_id)
        return qs.order_by("-created_at")


class CreateOrderView(CoordinatorMixin, views.APIView):
    """Create (or reuse) the Razorpay order for a registration's pending payment."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = CreateOrderRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_coordinator().create_order(
            data["registration_id"],
            data["amount"],
            data.get("currency"),
            user=request.user,
        )
        return Response(
            {
                "orderId": result.order_id,
                "amount": result.amount,
                "currency": result.currency,
                "keyId": settings.RAZORPAY_CHECKOUT_KEY,
            }
        )


class VerifyPaymentView(CoordinatorMixin, views.APIView):
    """Verify the signed result of Razorpay Checkout and complete the payment."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = VerifyPaymentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            result = self.get_coordinator().verify_payment(
                data["razorpay_order_id"],
                data["razorpay_payment_id"],
                data["razorpay_signature"],
                registration_id=data["registration_id"],
                user=request.user,
            )
        except SignatureMismatchError as exc:
            return Response(
                {"success": False, "detail": str(exc.detail), "code": exc.default_code},
                status=status.HTTP_400_BAD_REQUEST,
            )
        body = {"success": result.success}
        if result.already_verified:
            body["alreadyVerified"] = True
        return Response(body)


class PaymentFailureView(CoordinatorMixin, views.APIView):
    """Record a checkout failure reported by the browser."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = PaymentFailureRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        recorded = self.get_coordinator().report_failure(
            data["razorpay_order_id"], data.get("reason", ""), user=request.user
        )
        return Response({"recorded": recorded})


@method_decorator(csrf_exempt, name="dispatch")
class RazorpayWebhookView(CoordinatorMixin, views.APIView):
    """Handle incoming Razorpay webhook events."""

    authentication_classes = []
    permission_classes = [permissions.AllowAny]
    throttle_classes = []

    def post(self, request):
        # the signature covers the exact bytes Razorpay sent; never re-serialize
        payload = request.body
        signature = request.headers.get("X-Razorpay-Signature", "")
        result = self.get_coordinator().handle_webhook(payload, signature)
        logger.debug("[payments] webhook processed handled=%s reason=%s", result.handled, result.reason)
        return Response({"received": True}, status=status.HTTP_200_OK)
