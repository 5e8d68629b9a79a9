"""
Payments app package for the event registration backend.

This package holds the payment records for paid event registrations and
the Razorpay integration around them: order creation, verification of
the signed checkout result, and the webhook endpoint.  See
payments/reconciliation.py for the flow.
"""
