# services.py
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from auth import issue_token, utcnow, verify_password
from errors import InvalidCredentials, NotificationError, ValidationError
from models import MESSAGE_MAX_LENGTH, Appointment, User

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "email", "phone", "category", "date", "time")
DATE_FORMAT = "%Y-%m-%d"


def _column_length(field: str) -> Optional[int]:
    return getattr(Appointment.__table__.c[field].type, "length", None)


def _clean(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def validate_appointment_data(data) -> dict:
    """
    Check a booking/edit payload and return the values to store.

    All of name, email, phone, category, date and time must be non-empty;
    they must be single-line, date must be YYYY-MM-DD and every value must
    fit its column.
    """
    if data is None:
        data = {}

    values = {field: _clean(data.get(field)) for field in REQUIRED_FIELDS}
    missing = [field for field in REQUIRED_FIELDS if not values[field]]
    if missing:
        raise ValidationError(missing)

    multiline = [
        field for field in REQUIRED_FIELDS if "\r" in values[field] or "\n" in values[field]
    ]
    if multiline:
        raise ValidationError(multiline, "Fields must not contain line breaks.")

    try:
        values["date"] = datetime.strptime(values["date"], DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(["date"], "Date must be in YYYY-MM-DD format.")

    too_long = [
        field
        for field in REQUIRED_FIELDS
        if field != "date" and len(values[field]) > _column_length(field)
    ]
    message = _clean(data.get("message")) or None
    if message is not None and len(message) > MESSAGE_MAX_LENGTH:
        too_long.append("message")
    if too_long:
        raise ValidationError(too_long, "Input fields are too long.")

    values["message"] = message
    return values


@dataclass
class BookingResult:
    appointment: Appointment
    notification_error: Optional[NotificationError] = None

    @property
    def notified(self) -> bool:
        return self.notification_error is None


class AppointmentService:
    def __init__(self, store, notifier):
        self.store = store
        self.notifier = notifier

    def book_appointment(self, data) -> BookingResult:
        """Validate, save, then email; the saved booking stands even if email fails."""
        appointment = self.store.insert_appointment(validate_appointment_data(data))

        try:
            self.notifier.notify(appointment)
        except NotificationError as e:
            logger.error(f"Appointment {appointment.id} saved but notification failed: {e}")
            return BookingResult(appointment, e)

        logger.info(f"Appointment {appointment.id} booked and notifications sent")
        return BookingResult(appointment)

    def add_appointment(self, data) -> Appointment:
        return self.store.insert_appointment(validate_appointment_data(data))

    def update_appointment(self, appointment_id: int, data) -> Appointment:
        return self.store.update_appointment(appointment_id, validate_appointment_data(data))

    def delete_appointment(self, appointment_id: int) -> None:
        self.store.delete_appointment(appointment_id)

    def get_appointment(self, appointment_id: int) -> Appointment:
        return self.store.get_appointment(appointment_id)

    def list_appointments(self) -> List[Appointment]:
        return self.store.list_appointments()


@dataclass
class Session:
    user: User
    token: str


class LoginService:
    def __init__(self, store, secret: str):
        self.store = store
        self.secret = secret

    def login(self, email: str, password: str, now: Optional[datetime] = None) -> Session:
        user = self.store.find_user_by_email(_clean(email)) if email else None

        # same outcome for unknown email and wrong password
        if user is None or not verify_password(password, user.password):
            logger.warning(f"Failed login attempt for {email!r}")
            raise InvalidCredentials()

        token = issue_token(user.id, self.secret, now or utcnow())
        logger.info(f"User {user.id} logged in")
        return Session(user, token)
