"""
Tests for RazorpayGateway order creation and error classification.

The Razorpay SDK client is replaced with a mock; no network calls.
"""
from unittest import mock

import pytest
import requests
from razorpay.errors import BadRequestError, ServerError

from payments.exceptions import (
    AuthenticationError,
    ConfigurationError,
    GatewayError,
    GatewayTimeoutError,
    NetworkError,
    ValidationError,
)
from payments.gateway import GatewayOrder, RazorpayGateway


def _gateway(timeout=5.0):
    client = mock.MagicMock()
    return RazorpayGateway("rzp_test_key", "secret", timeout=timeout, client=client), client


def test_create_order_returns_gateway_order_and_passes_timeout():
    gateway, client = _gateway(timeout=4.0)
    client.order.create.return_value = {"id": "order_abc", "amount": 50000, "currency": "INR"}

    order = gateway.create_order(50000, "INR", receipt="reg_1", notes={"registration_id": "1"})

    assert order == GatewayOrder("order_abc", 50000, "INR")
    _, kwargs = client.order.create.call_args
    assert kwargs["timeout"] == 4.0
    assert kwargs["data"]["amount"] == 50000
    assert kwargs["data"]["receipt"] == "reg_1"


@pytest.mark.parametrize("amount", [0, 1, 99, -100, 150.5, "50000", True])
def test_invalid_amounts_never_reach_the_gateway(amount):
    gateway, client = _gateway()
    with pytest.raises(ValidationError):
        gateway.create_order(amount, "INR", receipt="reg_1")
    client.order.create.assert_not_called()


def test_missing_credentials_is_configuration_error():
    gateway = RazorpayGateway("", "")
    assert not gateway.configured
    with pytest.raises(ConfigurationError) as excinfo:
        gateway.create_order(50000, "INR", receipt="reg_1")
    assert "RAZORPAY" not in str(excinfo.value.detail)
    assert "RAZORPAY_KEY_ID" in excinfo.value.debug_detail


@pytest.mark.parametrize(
    "raised, expected",
    [
        (requests.Timeout("read timed out"), GatewayTimeoutError),
        (requests.ConnectionError("refused"), NetworkError),
        (BadRequestError("Authentication failed"), AuthenticationError),
        (BadRequestError("amount exceeds maximum"), GatewayError),
        (ServerError("internal"), GatewayError),
        (ValueError("Expecting value"), GatewayError),
    ],
)
def test_sdk_failures_are_classified(raised, expected):
    gateway, client = _gateway()
    client.order.create.side_effect = raised
    with pytest.raises(expected):
        gateway.create_order(50000, "INR", receipt="reg_1")


def test_timeout_is_a_network_error():
    assert issubclass(GatewayTimeoutError, NetworkError)


def test_response_without_id_is_gateway_error():
    gateway, client = _gateway()
    client.order.create.return_value = {"error": {}}
    with pytest.raises(GatewayError):
        gateway.create_order(50000, "INR", receipt="reg_1")
