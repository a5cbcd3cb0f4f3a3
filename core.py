# core.py
import logging
import os
from typing import Mapping, Optional

from flask import Flask, jsonify, redirect, request, url_for

from auth import hash_password
from errors import BookingError, StorageError, Unauthorized
from models import db
from notifications import BookingNotifier, SmtpMailer
from services import AppointmentService, LoginService
from store import AppointmentStore

DEFAULT_ADMIN_NAME = "Admin"
DEFAULT_ADMIN_EMAIL = "admin@example.com"
DEFAULT_SENDER = '"Luxe Style Barber" <no-reply@luxestylebarber.com>'


def _flag(value) -> bool:
    return str(value).lower() in ("1", "true", "yes")


class BookingBaseApp:
    """Base class of the booking application"""

    def __init__(self, config: Optional[Mapping] = None, mailer=None):
        # Flask app
        self.app = Flask(__name__, instance_relative_config=True)

        # 🔹 logger first
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        )
        self.logger = logging.getLogger("Booking")

        # 🔹 configuration from the environment
        self._load_config(config or {})

        # 🔹 Flask config
        self.app.config["SECRET_KEY"] = self.secret_key
        self.app.config["JWT_SECRET"] = self.jwt_secret
        self.app.config["SQLALCHEMY_DATABASE_URI"] = self.database_url
        self.app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
        self.app.config["TESTING"] = self.testing

        # 🔹 SQLAlchemy
        db.init_app(self.app)
        self.store = AppointmentStore(db)

        # 🔹 services
        self.mailer = mailer or SmtpMailer(
            host=self.smtp_host,
            port=self.smtp_port,
            username=self.email_user,
            password=self.email_pass,
            sender=self.mail_sender,
            timeout=self.smtp_timeout,
        )
        self.appointments = AppointmentService(
            self.store, BookingNotifier(self.mailer, self.receiver_email)
        )
        self.sessions = LoginService(self.store, self.jwt_secret)

        # 🔹 tables + default admin
        self._init_db()

        # 🔹 error handlers
        self._register_error_handlers()

        self.logger.info("Booking app initialized")

    # -------------------------------------------------

    def _load_config(self, overrides: Mapping):
        def get(key, default=None):
            if key in overrides:
                return overrides[key]
            return os.getenv(key, default)

        self.secret_key = get("SECRET_KEY", "dev-secret-key")
        self.jwt_secret = get("JWT_SECRET")
        self.database_url = get(
            "DATABASE_URL",
            "sqlite:///" + os.path.join(self.app.instance_path, "bookings.db"),
        )
        self.email_user = get("EMAIL_USER")
        self.email_pass = get("EMAIL_PASS")
        self.smtp_host = get("SMTP_HOST", "smtp.gmail.com")
        self.mail_sender = get("MAIL_SENDER", DEFAULT_SENDER)
        self.receiver_email = get("RECEIVER_EMAIL")
        self.admin_password = get("ADMIN_PASSWORD", "password123")
        self.cookie_secure = _flag(get("COOKIE_SECURE", "false"))
        self.testing = _flag(get("TESTING", "false"))

        if not self.jwt_secret:
            raise RuntimeError("JWT_SECRET is not set in the environment")

        try:
            self.smtp_port = int(get("SMTP_PORT", 465))
            self.smtp_timeout = float(get("SMTP_TIMEOUT", 30))
        except ValueError:
            raise RuntimeError("SMTP_PORT and SMTP_TIMEOUT must be numbers")

        if not self.email_user or not self.receiver_email:
            self.logger.warning("EMAIL_USER or RECEIVER_EMAIL not set, booking emails will fail")

        self.logger.info("Configuration loaded")

    # -------------------------------------------------

    def _init_db(self):
        os.makedirs(self.app.instance_path, exist_ok=True)

        with self.app.app_context():
            db.create_all()
            self.logger.info("Database tables ready")
            self.seed_default_admin()

    def seed_default_admin(self):
        self.store.insert_user_if_absent(
            DEFAULT_ADMIN_NAME, DEFAULT_ADMIN_EMAIL, hash_password(self.admin_password)
        )

    # -------------------------------------------------

    def _register_error_handlers(self):
        @self.app.errorhandler(Unauthorized)
        def unauthorized(error):
            if request.path.startswith("/api/"):
                return jsonify({"error": error.message}), 401
            return redirect(url_for("login"))

        @self.app.errorhandler(StorageError)
        def storage_error(error):
            self.logger.error(f"Storage error on {request.method} {request.path}: {error}")
            return jsonify({"error": "An internal error occurred."}), 500

        @self.app.errorhandler(BookingError)
        def booking_error(error):
            body = {"error": error.message}
            fields = getattr(error, "fields", None)
            if fields:
                body["fields"] = fields
            return jsonify(body), error.status_code

        @self.app.errorhandler(404)
        def not_found(error):
            self.logger.warning(f"404: {request.path}")
            return jsonify({"error": "Not found."}), 404

        @self.app.errorhandler(500)
        def internal_error(error):
            self.logger.exception("500 error")
            db.session.rollback()
            return jsonify({"error": "An internal error occurred."}), 500

    # -------------------------------------------------

    def run(self, port: int = 3000, debug: bool = False):
        self.logger.info(f"Flask running on port {port}")
        self.app.run(host="0.0.0.0", port=port, debug=debug)
