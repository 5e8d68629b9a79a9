"""
Common test fixtures for the Django REST Framework API tests.

Provides users (registrant, organizer, staff), clients authenticated
with JWT tokens, paid and free events with registrations, a fake
Razorpay gateway installed on the payments app, and helpers for
producing correctly signed checkout results and webhook bodies.
"""
import json

import pytest
from django.apps import apps
from django.conf import settings
from django.contrib.auth.models import User
from django.test import Client

from events.models import Event, FormField, Registration
from payments.gateway import GatewayOrder, validate_amount
from payments.signatures import compute_signature
from payments.store import ensure_pending_payment


class FakeGateway:
    """Stands in for RazorpayGateway; records calls and issues predictable order ids."""

    configured = True

    def __init__(self):
        self.calls = []
        self.order_ids = []
        self.error = None
        self.before_return = None

    def create_order(self, amount, currency, receipt, notes=None):
        amount = validate_amount(amount)
        if self.error is not None:
            raise self.error
        self.calls.append({"amount": amount, "currency": currency, "receipt": receipt, "notes": notes})
        order_id = self.order_ids.pop(0) if self.order_ids else f"order_fake{len(self.calls)}"
        if self.before_return is not None:
            self.before_return(order_id)
        return GatewayOrder(order_id=order_id, amount=amount, currency=currency)


def _jwt_client(username, password="pass12345"):
    client = Client()
    resp = client.post(
        "/api/auth/token/",
        {"username": username, "password": password},
        content_type="application/json",
    )
    assert resp.status_code == 200
    client.defaults["HTTP_AUTHORIZATION"] = f"Bearer {resp.json()['access']}"
    return client


@pytest.fixture
def user(db):
    """The registrant."""
    return User.objects.create_user(username="u1", password="pass12345", email="u1@example.com")


@pytest.fixture
def other_user(db):
    return User.objects.create_user(username="u2", password="pass12345", email="u2@example.com")


@pytest.fixture
def organizer(db):
    return User.objects.create_user(username="org", password="pass12345", email="org@example.com")


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        username="staff", password="pass12345", email="staff@example.com", is_staff=True
    )


@pytest.fixture
def auth_client(db, user):
    """Django test client authenticated as the registrant via JWT."""
    return _jwt_client(user.username)


@pytest.fixture
def other_client(db, other_user):
    return _jwt_client(other_user.username)


@pytest.fixture
def organizer_client(db, organizer):
    return _jwt_client(organizer.username)


@pytest.fixture
def staff_client(db, staff_user):
    return _jwt_client(staff_user.username)


@pytest.fixture
def paid_event(db, organizer):
    """A ₹500 event with a small registration form."""
    event = Event.objects.create(name="Tech Summit", fee_amount=50000, currency="INR", created_by=organizer)
    FormField.objects.create(event=event, label="Full name", field_type="text", required=True, sort_order=1)
    FormField.objects.create(
        event=event, label="T-shirt", field_type="select", options=["S", "M", "L"], sort_order=2
    )
    return event


@pytest.fixture
def free_event(db, organizer):
    return Event.objects.create(name="Open Meetup", fee_amount=0, created_by=organizer)


@pytest.fixture
def registration(db, user, paid_event):
    """A submitted registration for the paid event with its pending payment."""
    reg = Registration.objects.create(event=paid_event, user=user, form_data={"name": "U One"})
    ensure_pending_payment(reg)
    return reg


@pytest.fixture
def pending_payment(registration):
    return registration.payments.get()


@pytest.fixture
def free_registration(db, user, free_event):
    return Registration.objects.create(
        event=free_event, user=user, payment_status=Registration.PAYMENT_COMPLETED
    )


@pytest.fixture
def fake_gateway(monkeypatch):
    gateway = FakeGateway()
    monkeypatch.setattr(apps.get_app_config("payments"), "gateway", gateway, raising=False)
    return gateway


@pytest.fixture
def checkout_signature():
    def sign(order_id, payment_id):
        return compute_signature(f"{order_id}|{payment_id}", settings.RAZORPAY_KEY_SECRET)

    return sign


@pytest.fixture
def webhook_request():
    """Build ``(raw_body, signature)`` for a Razorpay payment webhook."""

    def build(order_id, payment_id, event="payment.captured", secret=None):
        body = json.dumps(
            {
                "entity": "event",
                "event": event,
                "payload": {
                    "payment": {
                        "entity": {
                            "id": payment_id,
                            "order_id": order_id,
                            "amount": 50000,
                            "currency": "INR",
                            "status": "captured",
                        }
                    }
                },
            },
            separators=(",", ":"),
        ).encode("utf-8")
        return body, compute_signature(body, secret or settings.RAZORPAY_WEBHOOK_SECRET)

    return build
