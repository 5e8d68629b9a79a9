"""
Error taxonomy for the payments app.

Every failure in order creation, payment verification or webhook
handling is raised as a `PaymentError` subclass.  They are DRF
``APIException`` subclasses, so the status code and the user-safe
message travel with the exception and the project exception handler
turns them into responses.  Internal detail (gateway error bodies,
missing setting names) goes in ``debug_detail``: it is logged, and only
echoed to the client when ``PAYMENTS_EXPOSE_ERROR_DETAIL`` is on.
"""
from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class PaymentError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "The payment request could not be processed."
    default_code = "payment_error"
    log_level = logging.WARNING

    def __init__(self, detail=None, code=None, debug_detail: str | None = None):
        super().__init__(detail=detail, code=code)
        self.debug_detail = debug_detail


class ValidationError(PaymentError):
    default_detail = "Invalid payment request."
    default_code = "validation_error"


class ConfigurationError(PaymentError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "The payment system is currently unavailable. Please try again later."
    default_code = "payment_unavailable"
    log_level = logging.ERROR


class AuthenticationError(PaymentError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = (
        "The payment gateway rejected our credentials. "
        "This is a configuration problem on our side; please contact the organizers."
    )
    default_code = "gateway_authentication_failed"
    log_level = logging.ERROR


class NetworkError(PaymentError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Could not reach the payment gateway. Please check your connection and try again."
    default_code = "gateway_unreachable"


class GatewayTimeoutError(NetworkError):
    default_detail = "The payment gateway took too long to respond. Please try again."
    default_code = "gateway_timeout"


class GatewayError(PaymentError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "The payment gateway could not create the order. Please try again."
    default_code = "gateway_error"
    log_level = logging.ERROR


class SignatureMismatchError(PaymentError):
    default_detail = "Payment could not be verified."
    default_code = "signature_mismatch"


class NotFoundError(PaymentError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class InvalidStateError(PaymentError):
    default_detail = "No pending payment for this registration."
    default_code = "invalid_state"


def exception_handler(exc, context):
    """DRF exception handler adding a stable ``code`` to payment errors."""
    response = drf_exception_handler(exc, context)
    if response is None or not isinstance(exc, PaymentError):
        return response

    view = context.get("view")
    logger.log(
        exc.log_level,
        "[payments] %s in %s: %s",
        type(exc).__name__,
        type(view).__name__ if view is not None else "?",
        exc.debug_detail or exc.detail,
    )
    response.data["code"] = exc.default_code
    if exc.debug_detail and getattr(settings, "PAYMENTS_EXPOSE_ERROR_DETAIL", False):
        response.data["debug"] = exc.debug_detail
    return response
