"""
Pytest configuration and fixtures for the booking app tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app import BookingApp
from errors import NotificationError
from models import db


TEST_JWT_SECRET = "test-jwt-secret"
RECEIVER_EMAIL = "owner@luxestylebarber.test"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "password123"


# =============================================================================
# Test Settings
# =============================================================================

def get_test_config() -> dict:
    """Return configuration for an isolated in-memory app."""
    return {
        "DATABASE_URL": "sqlite:///:memory:",
        "SECRET_KEY": "test-secret-key",
        "JWT_SECRET": TEST_JWT_SECRET,
        "RECEIVER_EMAIL": RECEIVER_EMAIL,
        "ADMIN_PASSWORD": ADMIN_PASSWORD,
        "TESTING": True,
    }


class RecordingMailer:
    """Mailer double that records every send attempt."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def send(self, recipient, subject, html):
        self.sent.append((recipient, subject, html))
        if "*" in self.fail_for or recipient in self.fail_for:
            raise NotificationError(f"refused {recipient}", [recipient])

    @property
    def recipients(self):
        return [recipient for recipient, _, _ in self.sent]


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def booking(mailer):
    """Booking application wired to an in-memory database."""
    booking_app = BookingApp(get_test_config(), mailer=mailer)
    yield booking_app
    with booking_app.app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app(booking):
    return booking.app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client):
    """Test client logged in as the seeded admin."""
    response = client.post(
        "/admin/login", data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 302
    return client


@pytest.fixture
def ctx(app):
    """Push an application context for direct store/service calls."""
    with app.app_context():
        yield


@pytest.fixture
def store(booking, ctx):
    return booking.store


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def alice_booking() -> dict:
    return {
        "name": "Alice",
        "email": "a@x.com",
        "phone": "555-1000",
        "category": "Haircut",
        "date": "2024-06-01",
        "time": "10:00",
        "message": "",
    }


@pytest.fixture
def bob_booking() -> dict:
    return {
        "name": "Bob",
        "email": "bob@example.com",
        "phone": "555-2000",
        "category": "Beard Trim",
        "date": "2024-05-30",
        "time": "15:30",
        "message": "Please be on time",
    }
