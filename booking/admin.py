from django.contrib import admin
from .models import Appointment, AvailabilityDay, AvailabilitySlot, DoctorSchedule, Hospital, Invoice


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "location")
    search_fields = ("name", "location")


@admin.register(DoctorSchedule)
class DoctorScheduleAdmin(admin.ModelAdmin):
    list_display = ("doctor", "hospital", "tz", "slot_duration_mins", "fees", "is_active", "updated_at")
    list_filter = ("is_active", "hospital")
    search_fields = ("doctor__username", "doctor__email")
    readonly_fields = ("updated_at",)

    fieldsets = (
        ("Doctor",   {"fields": ("doctor", "hospital", "fees", "is_active")}),
        ("Calendar", {"fields": ("tz", "slot_duration_mins", "working_hours", "unavailable_dates")}),
        ("Meta",     {"fields": ("updated_at",)}),
    )


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    # table columns
    list_display = ("id", "start", "end", "doctor", "patient", "status", "payment_pretty", "created_at")
    list_display_links = ("id", "start")

    # right sidebar filters
    list_filter = ("status", "payment_status", "hospital", "start")

    # top search bar
    search_fields = ("doctor__username", "patient__username", "patient__email", "reason")

    # date drilldown nav
    date_hierarchy = "start"

    list_per_page = 25

    readonly_fields = ("created_at", "updated_at", "pending_expires_at", "slot", "cancelled_by")

    # how the edit form is grouped
    fieldsets = (
        ("People",   {"fields": ("doctor", "patient", "hospital")}),
        ("Booking",  {"fields": ("start", "end", "status", "slot", "pending_expires_at", "cancelled_by")}),
        ("Payment",  {"fields": ("payment_amount", "payment_status", "payment_txn_id")}),
        ("Visit",    {"fields": ("reason", "notes", "prescription")}),
        ("Reminders", {"fields": ("reminder_sent_24h", "reminder_sent_1h")}),
        ("Meta",     {"fields": ("created_at", "updated_at")}),
    )

    def payment_pretty(self, obj):
        if obj.payment_amount is None:
            return obj.get_payment_status_display()
        return f"{obj.payment_amount} ({obj.get_payment_status_display()})"
    payment_pretty.short_description = "Payment"


class AvailabilitySlotInline(admin.TabularInline):
    model = AvailabilitySlot
    extra = 0
    fields = ("start", "end", "booked")


@admin.register(AvailabilityDay)
class AvailabilityDayAdmin(admin.ModelAdmin):
    list_display = ("id", "doctor", "date", "slot_count")
    list_filter = ("date",)
    search_fields = ("doctor__username",)
    date_hierarchy = "date"
    inlines = [AvailabilitySlotInline]

    def slot_count(self, obj):
        return obj.slots.count()
    slot_count.short_description = "Slots"


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("number", "appointment", "patient", "doctor", "amount", "status", "issued_at")
    list_filter = ("status", "issued_at")
    search_fields = ("number", "patient__username", "doctor__username")
    readonly_fields = ("issued_at",)
