"""
Serializers for the events app.

Events are exposed read-only together with their registration form.
`RegistrationSubmitSerializer` validates a submitted form against the
event's `FormField` definitions; answers are keyed by the field id.
"""
from decimal import Decimal, InvalidOperation

from django.utils import timezone
from rest_framework import serializers

from .models import Event, FormField, Registration


class FormFieldSerializer(serializers.ModelSerializer):
    class Meta:
        model = FormField
        fields = ["id", "label", "field_type", "required", "options", "sort_order"]
        read_only_fields = fields


class EventSerializer(serializers.ModelSerializer):
    """Serializer for Event objects, including the registration form."""

    form_fields = FormFieldSerializer(many=True, read_only=True)
    created_by_id = serializers.IntegerField(read_only=True)
    is_paid = serializers.BooleanField(read_only=True)

    class Meta:
        model = Event
        fields = [
            "id",
            "name",
            "description",
            "event_date",
            "registration_deadline",
            "fee_amount",
            "currency",
            "is_paid",
            "created_by_id",
            "form_fields",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RegistrationSerializer(serializers.ModelSerializer):
    event_id = serializers.IntegerField(source="event.id", read_only=True)
    event_name = serializers.CharField(source="event.name", read_only=True)
    user_id = serializers.IntegerField(source="user.id", read_only=True)

    class Meta:
        model = Registration
        fields = [
            "id",
            "event_id",
            "event_name",
            "user_id",
            "form_data",
            "status",
            "payment_status",
            "status_notes",
            "status_updated_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RegistrationSubmitSerializer(serializers.Serializer):
    form_data = serializers.DictField(required=False, default=dict)

    def validate(self, attrs):
        event = self.context["event"]
        deadline = event.registration_deadline
        if deadline and deadline < timezone.now():
            raise serializers.ValidationError("Registration for this event has closed.")

        answers = attrs.get("form_data") or {}
        errors = {}
        cleaned = {}
        for field in event.form_fields.all():
            key = str(field.id)
            value = answers.get(key)
            if isinstance(value, str):
                value = value.strip()
            if value in (None, ""):
                if field.required:
                    errors[key] = f"{field.label} is required."
                continue
            if field.field_type == FormField.TYPE_SELECT and field.options and value not in field.options:
                errors[key] = f"{field.label}: choose one of {', '.join(map(str, field.options))}."
                continue
            if field.field_type == FormField.TYPE_NUMBER:
                try:
                    Decimal(str(value))
                except InvalidOperation:
                    errors[key] = f"{field.label} must be a number."
                    continue
            if field.field_type == FormField.TYPE_EMAIL and "@" not in str(value):
                errors[key] = f"{field.label} must be an email address."
                continue
            cleaned[key] = value
        if errors:
            raise serializers.ValidationError({"form_data": errors})
        attrs["form_data"] = cleaned
        return attrs


class RegistrationReviewSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[Registration.STATUS_ACCEPTED, Registration.STATUS_REJECTED]
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
