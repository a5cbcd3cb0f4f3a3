# errors.py
from typing import List, Optional


class BookingError(Exception):
    """Base class for every error the booking app raises on purpose."""

    status_code = 500
    message = "Internal server error."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(BookingError):
    status_code = 400
    message = "Invalid or missing input fields."

    def __init__(self, fields: Optional[List[str]] = None, message: Optional[str] = None):
        super().__init__(message)
        self.fields = fields or []


class NotFound(BookingError):
    status_code = 404
    message = "Appointment not found."


class InvalidCredentials(BookingError):
    status_code = 401
    message = "Invalid email or password"


class Unauthorized(BookingError):
    status_code = 401
    message = "Authentication required."


class StorageError(BookingError):
    status_code = 500
    message = "Storage backend failure."


class NotificationError(BookingError):
    status_code = 502
    message = "Failed to send notification."

    def __init__(self, message: Optional[str] = None, recipients: Optional[List[str]] = None):
        super().__init__(message)
        self.recipients = recipients or []
