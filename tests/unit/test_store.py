"""
Unit tests for the appointment store.
"""

from datetime import date

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import NotFound, StorageError
from models import db


def make_fields(**overrides) -> dict:
    fields = {
        "name": "Alice",
        "email": "a@x.com",
        "phone": "555-1000",
        "category": "Haircut",
        "date": date(2024, 6, 1),
        "time": "10:00",
        "message": None,
    }
    fields.update(overrides)
    return fields


class TestAppointments:
    def test_insert_then_get_round_trip(self, store):
        fields = make_fields(message="First visit")
        created = store.insert_appointment(fields)

        fetched = store.get_appointment(created.id)

        assert isinstance(created.id, int)
        assert fetched.to_dict() == {**fields, "id": created.id, "date": "2024-06-01"}

    def test_ids_are_unique(self, store):
        first = store.insert_appointment(make_fields())
        second = store.insert_appointment(make_fields())

        assert first.id != second.id

    def test_list_ordered_by_date_then_time(self, store):
        store.insert_appointment(make_fields(name="late", date=date(2024, 6, 2), time="09:00"))
        store.insert_appointment(make_fields(name="afternoon", date=date(2024, 6, 1), time="14:00"))
        store.insert_appointment(make_fields(name="morning", date=date(2024, 6, 1), time="09:30"))
        store.insert_appointment(make_fields(name="early", date=date(2024, 5, 31), time="18:00"))

        names = [a.name for a in store.list_appointments()]

        assert names == ["early", "morning", "afternoon", "late"]

    def test_list_is_stable_for_identical_slots(self, store):
        ids = [store.insert_appointment(make_fields(name=str(i))).id for i in range(3)]

        assert [a.id for a in store.list_appointments()] == ids

    def test_update_replaces_all_fields(self, store):
        created = store.insert_appointment(make_fields(message="old"))
        new_fields = make_fields(
            name="Alicia",
            email="alicia@x.com",
            phone="555-9999",
            category="Shave",
            date=date(2024, 7, 15),
            time="11:15",
            message=None,
        )

        store.update_appointment(created.id, new_fields)

        assert store.get_appointment(created.id).to_dict() == {
            **new_fields,
            "id": created.id,
            "date": "2024-07-15",
        }

    def test_update_missing_id_creates_nothing(self, store):
        with pytest.raises(NotFound):
            store.update_appointment(999, make_fields())

        assert store.list_appointments() == []

    def test_delete(self, store):
        created = store.insert_appointment(make_fields())

        store.delete_appointment(created.id)

        with pytest.raises(NotFound):
            store.get_appointment(created.id)

    def test_delete_missing_id(self, store):
        with pytest.raises(NotFound):
            store.delete_appointment(12345)

    def test_commit_failure_becomes_storage_error(self, store, monkeypatch):
        def broken_commit():
            raise SQLAlchemyError("connection lost")

        monkeypatch.setattr(db.session, "commit", broken_commit)

        with pytest.raises(StorageError):
            store.insert_appointment(make_fields())


class TestUsers:
    def test_default_admin_seeded(self, store):
        admin = store.find_user_by_email("admin@example.com")

        assert admin is not None
        assert admin.name == "Admin"
        assert admin.password != "password123"
        assert admin.created_at is not None

    def test_find_unknown_user(self, store):
        assert store.find_user_by_email("nobody@example.com") is None

    def test_insert_user_if_absent_is_idempotent(self, store):
        store.insert_user_if_absent("Staff", "staff@example.com", "hash-1")
        store.insert_user_if_absent("Other", "staff@example.com", "hash-2")

        assert store.count_users("staff@example.com") == 1
        assert store.find_user_by_email("staff@example.com").password == "hash-1"

    def test_seeding_twice_keeps_one_admin(self, booking, store):
        booking.seed_default_admin()
        booking.seed_default_admin()

        assert store.count_users("admin@example.com") == 1
        assert store.count_users() == 1

    def test_count_failure_becomes_storage_error(self, store, monkeypatch):
        def broken_scalar(*args, **kwargs):
            raise SQLAlchemyError("connection lost")

        monkeypatch.setattr(Session, "scalar", broken_scalar)

        with pytest.raises(StorageError):
            store.count_users()
