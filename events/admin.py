"""
Admin configuration for the events app.

Defines list displays for events (with their form fields inline),
registrations and the staff activity log.
"""
from django.contrib import admin

from .models import ActivityLog, Event, FormField, Registration


class FormFieldInline(admin.TabularInline):
    model = FormField
    extra = 0


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ("name", "event_date", "fee_amount", "currency", "created_by", "created_at")
    search_fields = ("name",)
    inlines = [FormFieldInline]


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ("id", "event", "user", "status", "payment_status", "created_at")
    list_filter = ("status", "payment_status", "event")
    search_fields = ("user__username", "user__email", "event__name")
    readonly_fields = ("payment_status",)


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("action", "entity_type", "entity_id", "actor", "created_at")
    list_filter = ("action", "entity_type")
