# bookings/errors.py

"""
Typed rejections raised by the booking admission check and the status
state machine. Each carries the HTTP status and the machine-readable code the
API returns, so routers can simply let them propagate.
"""


class BookingError(Exception):
    status_code = 400
    code = "booking_error"
    message = "Booking request rejected"

    def __init__(self, message=None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self):
        return {"detail": self.message, "code": self.code}


# --- Validation (client-correctable) ---

class MissingFields(BookingError):
    code = "missing_fields"
    message = "Please provide all required fields"


class InvalidDate(BookingError):
    code = "invalid_date"
    message = "Check-in and check-out must be valid dates (YYYY-MM-DD)"


class InvalidGuestCount(BookingError):
    code = "invalid_guest_count"
    message = "Guest count must be a whole number of at least 1"


class PastCheckIn(BookingError):
    code = "past_check_in"
    message = "Check-in date cannot be in the past"


class InvalidRange(BookingError):
    code = "invalid_range"
    message = "Check-out date must be after check-in date"


class StayTooLong(InvalidRange):
    code = "stay_too_long"
    message = "Stay is longer than the maximum allowed"


class GuestLimitExceeded(BookingError):
    code = "guest_limit_exceeded"
    message = "Too many guests for this listing"


class InvalidStatus(BookingError):
    code = "invalid_status"
    message = "Invalid status"


class CancellationClosed(BookingError):
    code = "cancellation_closed"
    message = "Cannot cancel a booking that has already started"


# --- Not found ---

class ListingNotFound(BookingError):
    status_code = 404
    code = "listing_not_found"
    message = "Listing not found"


class BookingNotFound(BookingError):
    status_code = 404
    code = "booking_not_found"
    message = "Booking not found"


# --- Authorization ---

class NotAuthorized(BookingError):
    status_code = 403
    code = "not_authorized"
    message = "Not authorized to perform this action"


# --- Conflict ---

class DatesUnavailable(BookingError):
    status_code = 409
    code = "dates_unavailable"
    message = "These dates are not available, please choose different dates"


class InvalidTransition(BookingError):
    status_code = 409
    code = "invalid_transition"
    message = "This status change is not allowed"


# --- Server ---

class StorageError(BookingError):
    status_code = 500
    code = "storage_error"
    message = "Error creating booking, please try again later"
