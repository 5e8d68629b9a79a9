"""
Django admin registration for the payments app.

Payments are read-mostly in the admin: status and gateway identifiers
are written by the reconciliation flow, not by hand.
"""
from django.contrib import admin
from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "registration",
        "amount",
        "currency",
        "status",
        "gateway_order_id",
        "gateway_payment_id",
        "created_at",
        "verified_at",
    )
    list_filter = ("status", "currency")
    search_fields = ("gateway_order_id", "gateway_payment_id", "registration__user__username")
    readonly_fields = (
        "amount",
        "gateway_order_id",
        "gateway_payment_id",
        "gateway_signature",
        "status",
        "verified_at",
        "created_at",
    )
    ordering = ("-created_at",)
