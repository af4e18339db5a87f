class BookingError(Exception):
    """Base class for booking failures reported back to the caller."""

    status_code = 400
    default_message = "Booking request failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(BookingError):
    status_code = 404
    default_message = "Not found"


class InvalidInterval(BookingError):
    default_message = "End time must be after start time"


class DoctorUnavailable(BookingError):
    default_message = "Doctor not available on this date"


class SlotUnavailable(BookingError):
    status_code = 409
    default_message = "This slot is already booked"


class SlotAlreadyBooked(SlotUnavailable):
    default_message = "Slot already booked"


class SlotNotFound(NotFound):
    default_message = "Slot not found"


class InvalidTransition(BookingError):
    status_code = 409
    default_message = "Appointment cannot move to the requested status"


class OverlappingSlot(BookingError):
    default_message = "Overlapping availability slot"
