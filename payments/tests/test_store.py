"""
Tests for the payment record store's conditional writes.
"""
import pytest
from django.db import IntegrityError, transaction

from payments import store
from payments.models import Payment


@pytest.mark.django_db
def test_attach_gateway_order_is_write_once(pending_payment):
    assert store.attach_gateway_order(pending_payment.pk, "order_first") is True
    assert store.attach_gateway_order(pending_payment.pk, "order_second") is False
    pending_payment.refresh_from_db()
    assert pending_payment.gateway_order_id == "order_first"


@pytest.mark.django_db
def test_find_by_gateway_order_id(pending_payment):
    store.attach_gateway_order(pending_payment.pk, "order_abc")
    assert store.find_by_gateway_order_id("order_abc").pk == pending_payment.pk
    assert store.find_by_gateway_order_id("order_missing") is None
    assert store.find_by_gateway_order_id("") is None


@pytest.mark.django_db
def test_mark_completed_applies_exactly_once(pending_payment):
    assert store.mark_completed(pending_payment.pk, "pay_123", "sig") is True
    assert store.mark_completed(pending_payment.pk, "pay_999", "other") is False
    pending_payment.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_COMPLETED
    assert pending_payment.gateway_payment_id == "pay_123"
    assert pending_payment.gateway_signature == "sig"
    assert pending_payment.verified_at is not None


@pytest.mark.django_db
def test_completed_payment_cannot_fail(pending_payment):
    store.mark_completed(pending_payment.pk, "pay_123")
    assert store.mark_failed(pending_payment.pk, "card declined") is False
    pending_payment.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_COMPLETED


@pytest.mark.django_db
def test_failed_payment_can_still_complete(pending_payment):
    assert store.mark_failed(pending_payment.pk, "card declined") is True
    pending_payment.refresh_from_db()
    assert pending_payment.failure_reason == "card declined"
    assert store.find_pending_payment_for_registration(pending_payment.registration_id) is None

    assert store.mark_completed(pending_payment.pk, "pay_late") is True
    pending_payment.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_COMPLETED
    assert pending_payment.failure_reason == ""


@pytest.mark.django_db
def test_ensure_pending_payment_finds_or_creates(registration, pending_payment):
    payment, created = store.ensure_pending_payment(registration)
    assert created is False
    assert payment.pk == pending_payment.pk

    store.mark_failed(pending_payment.pk, "declined")
    retry, created = store.ensure_pending_payment(registration)
    assert created is True
    assert retry.pk != pending_payment.pk
    assert retry.amount == registration.event.fee_amount
    assert store.latest_payment_for_registration(registration.pk).pk == retry.pk


@pytest.mark.django_db
def test_only_one_pending_payment_per_registration(registration):
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            store.create_pending_payment(registration, 50000, "INR")


@pytest.mark.django_db
def test_supersede_sibling_payments_closes_other_attempts(registration, pending_payment):
    store.mark_failed(pending_payment.pk, "declined")
    retry, _ = store.ensure_pending_payment(registration)

    assert store.supersede_sibling_payments(registration.pk, pending_payment.pk) == 1

    retry.refresh_from_db()
    assert retry.status == Payment.STATUS_SUPERSEDED
    assert store.find_pending_payment_for_registration(registration.pk) is None
    pending_payment.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_FAILED


@pytest.mark.django_db
def test_supersede_leaves_completed_siblings_alone(registration, pending_payment):
    store.mark_completed(pending_payment.pk, "pay_1")
    other = store.create_pending_payment(registration, 50000, "INR")

    store.supersede_sibling_payments(registration.pk, other.pk)

    pending_payment.refresh_from_db()
    assert pending_payment.status == Payment.STATUS_COMPLETED
