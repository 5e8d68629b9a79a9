"""
ViewSets for the events app.

Anyone may browse events and their registration forms.  Authenticated
users submit registrations; for a paid event the submission also opens
the pending payment the checkout page will request an order for.
Staff and the event's organizer review registrations.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Q

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from payments.views import CoordinatorMixin
from payments.store import ensure_pending_payment

from .models import Event, Registration
from .registration_state import review_registration
from .serializers import (
    EventSerializer,
    RegistrationReviewSerializer,
    RegistrationSerializer,
    RegistrationSubmitSerializer,
)

logger = logging.getLogger(__name__)


def _payment_summary(payment):
    return {
        "id": payment.id,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status,
        "gateway_order_id": payment.gateway_order_id,
    }


class EventViewSet(viewsets.ReadOnlyModelViewSet):
    """List and retrieve events; submit a registration via ``register``."""

    serializer_class = EventSerializer
    queryset = Event.objects.all().prefetch_related("form_fields")

    def get_permissions(self):
        if self.action == "register":
            return [permissions.IsAuthenticated()]
        return [permissions.AllowAny()]

    @action(detail=True, methods=["post"], url_path="register")
    def register(self, request, pk=None):
        event = self.get_object()
        serializer = RegistrationSubmitSerializer(
            data=request.data, context={"event": event, "request": request}
        )
        serializer.is_valid(raise_exception=True)

        if Registration.objects.filter(event=event, user=request.user).exists():
            raise ValidationError({"detail": "You have already registered for this event."})

        payment = None
        try:
            with transaction.atomic():
                registration = Registration.objects.create(
                    event=event,
                    user=request.user,
                    form_data=serializer.validated_data["form_data"],
                    status=Registration.STATUS_PENDING,
                    # free events never go through the payment flow
                    payment_status=(
                        Registration.PAYMENT_PENDING if event.is_paid else Registration.PAYMENT_COMPLETED
                    ),
                )
                if event.is_paid:
                    payment, _ = ensure_pending_payment(registration)
        except IntegrityError:
            raise ValidationError({"detail": "You have already registered for this event."})

        logger.info("[events] user %s registered for event %s", request.user.pk, event.pk)
        data = RegistrationSerializer(registration).data
        data["payment"] = _payment_summary(payment) if payment else None
        return Response(data, status=status.HTTP_201_CREATED)


class RegistrationViewSet(CoordinatorMixin, viewsets.ReadOnlyModelViewSet):
    """
    Registrations visible to the current user: their own, plus those for
    events they organize.  Staff see everything.
    """

    serializer_class = RegistrationSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        user = self.request.user
        qs = Registration.objects.select_related("event", "user")
        if not user.is_staff:
            qs = qs.filter(Q(user=user) | Q(event__created_by=user))
        event_id = self.request.query_params.get("event")
        if event_id:
            qs = qs.filter(event_id=event_id)
        status_param = self.request.query_params.get("status")
        if status_param:
            qs = qs.filter(status=status_param)
        return qs.order_by("-created_at")

    @action(detail=True, methods=["post"], url_path="payment")
    def payment(self, request, pk=None):
        """Return the pending payment for this registration, opening a new one after a failure."""
        registration = self.get_object()
        if registration.user_id != request.user.pk:
            raise PermissionDenied("Only the registrant can pay for this registration.")
        payment = self.get_coordinator().prepare_payment(registration)
        return Response(_payment_summary(payment))

    @action(detail=True, methods=["post"], url_path="review")
    def review(self, request, pk=None):
        registration = self.get_object()
        user = request.user
        if not (user.is_staff or registration.event.created_by_id == user.pk):
            raise PermissionDenied("You do not have permission to review this registration.")
        serializer = RegistrationReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review_registration(
            registration,
            serializer.validated_data["status"],
            user,
            serializer.validated_data.get("notes", ""),
        )
        return Response(RegistrationSerializer(registration).data)
