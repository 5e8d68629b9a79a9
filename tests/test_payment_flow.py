"""
End-to-end checkout flows through the public API.

A registrant signs up for a paid event, asks for an order, and the
payment is confirmed by the browser callback, the Razorpay webhook, or
both in either order.  The confirmation email must go out exactly once.
"""
import pytest
from django.core import mail

from events.models import Registration


def _sign_up(client, event):
    field_id = str(event.form_fields.get(label="Full name").id)
    resp = client.post(
        f"/api/events/{event.id}/register/",
        {"form_data": {field_id: "Asha Rao"}},
        content_type="application/json",
    )
    assert resp.status_code == 201
    return resp.json()


def _create_order(client, registration_id, amount):
    resp = client.post(
        "/api/payments/orders/",
        {"registration_id": registration_id, "amount": amount, "currency": "inr"},
        content_type="application/json",
    )
    assert resp.status_code == 200
    return resp.json()["orderId"]


def _verify(client, registration_id, order_id, payment_id, signature):
    return client.post(
        "/api/payments/verify/",
        {
            "registration_id": registration_id,
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
        },
        content_type="application/json",
    )


@pytest.mark.django_db
def test_browser_callback_then_webhook(auth_client, client, fake_gateway, paid_event,
                                       checkout_signature, webhook_request,
                                       django_capture_on_commit_callbacks):
    reg = _sign_up(auth_client, paid_event)
    order_id = _create_order(auth_client, reg["id"], reg["payment"]["amount"])

    with django_capture_on_commit_callbacks(execute=True):
        resp = _verify(auth_client, reg["id"], order_id, "pay_1", checkout_signature(order_id, "pay_1"))
        assert resp.json() == {"success": True}

        body, sig = webhook_request(order_id, "pay_1")
        hook = client.post(
            "/api/payments/webhook/razorpay/", body,
            content_type="application/json", HTTP_X_RAZORPAY_SIGNATURE=sig,
        )
        assert hook.status_code == 200

    assert Registration.objects.get(pk=reg["id"]).payment_status == Registration.PAYMENT_COMPLETED
    assert len(mail.outbox) == 1
    assert mail.outbox[0].subject == "Payment received for Tech Summit"
    assert mail.outbox[0].to == ["u1@example.com"]
    assert "500.00 INR" in mail.outbox[0].body


@pytest.mark.django_db
def test_webhook_before_browser_callback(auth_client, client, fake_gateway, paid_event,
                                         checkout_signature, webhook_request,
                                         django_capture_on_commit_callbacks):
    reg = _sign_up(auth_client, paid_event)
    order_id = _create_order(auth_client, reg["id"], 50000)

    with django_capture_on_commit_callbacks(execute=True):
        body, sig = webhook_request(order_id, "pay_1")
        client.post(
            "/api/payments/webhook/razorpay/", body,
            content_type="application/json", HTTP_X_RAZORPAY_SIGNATURE=sig,
        )
        resp = _verify(auth_client, reg["id"], order_id, "pay_1", checkout_signature(order_id, "pay_1"))

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "alreadyVerified": True}
    assert Registration.objects.get(pk=reg["id"]).payment_status == Registration.PAYMENT_COMPLETED
    assert len(mail.outbox) == 1


@pytest.mark.django_db
def test_failed_attempt_then_successful_retry(auth_client, fake_gateway, paid_event,
                                              checkout_signature, django_capture_on_commit_callbacks):
    fake_gateway.order_ids = ["order_first", "order_second"]
    reg = _sign_up(auth_client, paid_event)
    first = _create_order(auth_client, reg["id"], 50000)

    resp = auth_client.post(
        "/api/payments/failure/",
        {"razorpay_order_id": first, "reason": "card declined"},
        content_type="application/json",
    )
    assert resp.json() == {"recorded": True}
    assert Registration.objects.get(pk=reg["id"]).payment_status == Registration.PAYMENT_FAILED

    # no pending payment until a new attempt is opened
    stale = auth_client.post(
        "/api/payments/orders/", {"registration_id": reg["id"], "amount": 50000}, content_type="application/json"
    )
    assert stale.status_code == 400
    assert stale.json()["code"] == "invalid_state"

    retry = auth_client.post(f"/api/registrations/{reg['id']}/payment/")
    assert retry.status_code == 200
    second = _create_order(auth_client, reg["id"], 50000)
    assert second == "order_second"

    with django_capture_on_commit_callbacks(execute=True):
        resp = _verify(auth_client, reg["id"], second, "pay_2", checkout_signature(second, "pay_2"))

    assert resp.json() == {"success": True}
    registration = Registration.objects.get(pk=reg["id"])
    assert registration.payment_status == Registration.PAYMENT_COMPLETED
    statuses = dict(registration.payments.values_list("gateway_order_id", "status"))
    assert statuses == {"order_first": "failed", "order_second": "completed"}
    assert len(mail.outbox) == 1


@pytest.mark.django_db
def test_tampered_amount_is_refused(auth_client, fake_gateway, paid_event):
    reg = _sign_up(auth_client, paid_event)

    resp = auth_client.post(
        "/api/payments/orders/", {"registration_id": reg["id"], "amount": 100}, content_type="application/json"
    )

    assert resp.status_code == 400
    assert fake_gateway.calls == []


@pytest.mark.django_db
def test_late_capture_of_failed_attempt_closes_the_retry(auth_client, client, fake_gateway, paid_event,
                                                        webhook_request, django_capture_on_commit_callbacks):
    fake_gateway.order_ids = ["order_first", "order_second"]
    reg = _sign_up(auth_client, paid_event)
    first = _create_order(auth_client, reg["id"], 50000)
    auth_client.post(
        "/api/payments/failure/",
        {"razorpay_order_id": first, "reason": "bank timeout"},
        content_type="application/json",
    )
    assert auth_client.post(f"/api/registrations/{reg['id']}/payment/").status_code == 200

    with django_capture_on_commit_callbacks(execute=True):
        body, sig = webhook_request(first, "pay_late")
        hook = client.post(
            "/api/payments/webhook/razorpay/", body,
            content_type="application/json", HTTP_X_RAZORPAY_SIGNATURE=sig,
        )
    assert hook.status_code == 200

    registration = Registration.objects.get(pk=reg["id"])
    assert registration.payment_status == Registration.PAYMENT_COMPLETED
    assert sorted(registration.payments.values_list("status", flat=True)) == ["completed", "superseded"]
    assert len(mail.outbox) == 1

    # the superseded retry can no longer be paid
    again = auth_client.post(
        "/api/payments/orders/", {"registration_id": reg["id"], "amount": 50000}, content_type="application/json"
    )
    assert again.status_code == 400
    assert again.json()["code"] == "invalid_state"
    assert auth_client.post(f"/api/registrations/{reg['id']}/payment/").status_code == 400
    assert len(fake_gateway.calls) == 1
