"""
URL configuration for the payments app.

Exposes order creation, checkout verification, failure reporting and
the Razorpay webhook, plus read-only payment listing.  Include this
module under ``/api/`` in the project-level URL config.
"""
from django.urls import path
from rest_framework.routers import DefaultRouter
from .views import (
    CreateOrderView,
    PaymentFailureView,
    PaymentViewSet,
    RazorpayWebhookView,
    VerifyPaymentView,
)


router = DefaultRouter()
router.register(r"payments", PaymentViewSet, basename="payment")

urlpatterns = [
    path("payments/orders/", CreateOrderView.as_view(), name="payment-create-order"),
    path("payments/verify/", VerifyPaymentView.as_view(), name="payment-verify"),
    path("payments/failure/", PaymentFailureView.as_view(), name="payment-failure"),
    path("payments/webhook/razorpay/", RazorpayWebhookView.as_view(), name="razorpay-webhook"),
    *router.urls,
]
