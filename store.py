# store.py
import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import NotFound, StorageError
from models import Appointment, User

logger = logging.getLogger(__name__)

APPOINTMENT_FIELDS = ("name", "email", "phone", "category", "date", "time", "message")


class AppointmentStore:
    """Gateway to the appointments and users tables.

    Bound to the Flask-SQLAlchemy handle it is given, so every application
    instance (and every test) talks to its own database.
    """

    def __init__(self, db):
        self.db = db

    # -------------------------------------------------

    def _commit(self, action: str) -> None:
        try:
            self.db.session.commit()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.exception(f"Database error while trying to {action}")
            raise StorageError(f"Failed to {action}.") from e

    def _get(self, model, ident: int):
        try:
            return self.db.session.get(model, ident)
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.exception(f"Database error while loading {model.__name__} {ident}")
            raise StorageError(f"Failed to fetch {model.__name__.lower()}.") from e

    # -------------------------------------------------
    # Appointments

    def insert_appointment(self, fields: dict) -> Appointment:
        appointment = Appointment(**{k: fields.get(k) for k in APPOINTMENT_FIELDS})
        self.db.session.add(appointment)
        self._commit("save appointment")
        logger.info(f"Appointment {appointment.id} saved for {appointment.date} {appointment.time}")
        return appointment

    def list_appointments(self) -> List[Appointment]:
        stmt = select(Appointment).order_by(Appointment.date, Appointment.time, Appointment.id)
        try:
            return list(self.db.session.scalars(stmt))
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.exception("Database error while listing appointments")
            raise StorageError("Failed to fetch appointments.") from e

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self._get(Appointment, appointment_id)
        if appointment is None:
            raise NotFound()
        return appointment

    def update_appointment(self, appointment_id: int, fields: dict) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        for key in APPOINTMENT_FIELDS:
            setattr(appointment, key, fields.get(key))
        self._commit("update appointment")
        logger.info(f"Appointment {appointment_id} updated")
        return appointment

    def delete_appointment(self, appointment_id: int) -> None:
        appointment = self.get_appointment(appointment_id)
        self.db.session.delete(appointment)
        self._commit("delete appointment")
        logger.info(f"Appointment {appointment_id} deleted")

    # -------------------------------------------------
    # Users

    def find_user_by_email(self, email: str) -> Optional[User]:
        try:
            return self.db.session.scalars(select(User).filter_by(email=email)).first()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.exception("Database error while looking up user")
            raise StorageError("Failed to fetch user.") from e

    def insert_user_if_absent(self, name: str, email: str, password_hash: str) -> None:
        if self.find_user_by_email(email) is not None:
            logger.info(f"User {email} already exists")
            return

        self.db.session.add(User(name=name, email=email, password=password_hash))
        try:
            self.db.session.commit()
        except IntegrityError:
            # inserted concurrently by another process
            self.db.session.rollback()
            logger.info(f"User {email} already exists")
            return
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.exception(f"Database error while creating user {email}")
            raise StorageError("Failed to create user.") from e
        logger.info(f"User {email} created")

    def count_users(self, email: Optional[str] = None) -> int:
        stmt = select(func.count(User.id))
        if email is not None:
            stmt = stmt.where(User.email == email)
        try:
            return self.db.session.scalar(stmt)
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.exception("Database error while counting users")
            raise StorageError("Failed to count users.") from e
