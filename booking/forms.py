from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django import forms

from .constants import WEEKDAY_KEYS
from .models import Appointment
from .utils.time_utils import parse_clock, parse_date

DATE_INPUT_FORMATS = ["%Y-%m-%d"]


class FreeSlotsQueryForm(forms.Form):
    date = forms.DateField(input_formats=DATE_INPUT_FORMATS)


class IntervalForm(forms.Form):
    """Shared [start, end) validation; accepts ISO 8601 timestamps."""

    start = forms.DateTimeField()
    end = forms.DateTimeField()

    def clean(self):
        cleaned = super().clean()
        start = cleaned.get("start")
        end = cleaned.get("end")

        # let the normal "required" errors handle missing values
        if not start or not end:
            return cleaned

        if end <= start:
            raise forms.ValidationError("End time must be after start time")
        return cleaned


class BookingForm(IntervalForm):
    """
    Patient booking request.
    Used by:
      - patient API booking (status = PENDING)
    """

    doctor_id = forms.IntegerField(min_value=1)
    reason = forms.CharField(required=False, max_length=1000)

    def clean_reason(self):
        return (self.cleaned_data.get("reason") or "").strip()


class RescheduleForm(IntervalForm):
    pass


class PaymentConfirmationForm(forms.Form):
    appointment_id = forms.IntegerField(min_value=1)
    amount = forms.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    transaction_id = forms.CharField(required=False, max_length=120)


class AppointmentFilterForm(forms.Form):
    scope = forms.ChoiceField(choices=[("upcoming", "Upcoming"), ("past", "Past")], required=False)
    status = forms.MultipleChoiceField(choices=Appointment.STATUS_CHOICES, required=False)
    start_after = forms.DateTimeField(required=False)
    start_before = forms.DateTimeField(required=False)


class ConfirmDecisionForm(forms.Form):
    action = forms.ChoiceField(choices=[("accept", "Accept"), ("reject", "Reject")])

    @property
    def accepted(self) -> bool:
        return self.cleaned_data["action"] == "accept"


class CompletionForm(forms.Form):
    outcome = forms.ChoiceField(choices=[
        (Appointment.STATUS_COMPLETED, "Completed"),
        (Appointment.STATUS_NO_SHOW, "No show"),
    ])
    notes = forms.CharField(required=False)
    prescription = forms.CharField(required=False)


class SlotBatchForm(forms.Form):
    """
    Doctor publishing explicit slots for one date:
    {"date": "2027-02-15", "slots": [{"start": "...", "end": "..."}, ...]}
    """

    date = forms.DateField(input_formats=DATE_INPUT_FORMATS)
    slots = forms.JSONField()

    def clean_slots(self):
        raw = self.cleaned_data.get("slots")
        if not isinstance(raw, list) or not raw:
            raise forms.ValidationError("Provide a non-empty list of slots.")

        field = forms.DateTimeField()
        parsed = []
        for item in raw:
            if not isinstance(item, dict):
                raise forms.ValidationError("Each slot needs a start and an end.")
            start = field.clean(item.get("start"))
            end = field.clean(item.get("end"))
            if end <= start:
                raise forms.ValidationError("Slot end must be after its start.")
            parsed.append((start, end))
        return parsed


class ScheduleForm(forms.Form):
    slot_duration_mins = forms.IntegerField(min_value=5, max_value=480, required=False)
    working_hours = forms.JSONField(required=False)
    unavailable_dates = forms.JSONField(required=False)
    tz = forms.CharField(required=False, max_length=64)
    fees = forms.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)

    def clean_working_hours(self):
        hours = self.cleaned_data.get("working_hours")
        if hours is None:
            # an explicit empty value clears the template
            return {} if "working_hours" in self.data else None
        if not isinstance(hours, dict):
            raise forms.ValidationError("Working hours must map weekdays to windows.")

        cleaned = {}
        for key, windows in hours.items():
            if key not in WEEKDAY_KEYS:
                raise forms.ValidationError(f"Unknown weekday '{key}'.")
            if not isinstance(windows, list):
                raise forms.ValidationError(f"Windows for '{key}' must be a list.")

            parsed = []
            for window in windows:
                try:
                    start = parse_clock(window["start"])
                    end = parse_clock(window["end"])
                except (KeyError, TypeError, ValueError):
                    raise forms.ValidationError(f"Windows for '{key}' need HH:MM start and end.")
                if end <= start:
                    raise forms.ValidationError(f"A window on '{key}' ends before it starts.")
                parsed.append({"start": start.strftime("%H:%M"), "end": end.strftime("%H:%M")})
            cleaned[key] = parsed
        return cleaned

    def clean_unavailable_dates(self):
        dates = self.cleaned_data.get("unavailable_dates")
        if dates is None:
            return [] if "unavailable_dates" in self.data else None
        if not isinstance(dates, list):
            raise forms.ValidationError("Unavailable dates must be a list of YYYY-MM-DD strings.")

        parsed = [parse_date(d) if isinstance(d, str) else None for d in dates]
        if any(d is None for d in parsed):
            raise forms.ValidationError("Unavailable dates must be a list of YYYY-MM-DD strings.")
        return sorted({d.isoformat() for d in parsed})

    def clean_tz(self):
        tz = (self.cleaned_data.get("tz") or "").strip()
        if not tz:
            return None
        try:
            ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError):
            raise forms.ValidationError(f"Unknown time zone '{tz}'.")
        return tz
