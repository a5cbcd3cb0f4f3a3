# app.py
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, make_response, redirect, render_template, request, url_for

from auth import TOKEN_COOKIE, TOKEN_LIFETIME, USER_NAME_COOKIE, login_required
from core import BookingBaseApp
from errors import InvalidCredentials, StorageError, ValidationError

load_dotenv()

COOKIE_MAX_AGE = int(TOKEN_LIFETIME.total_seconds())


def _payload():
    """JSON body if the client sent one, otherwise the submitted form."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) and data else request.form


class BookingApp(BookingBaseApp):
    """Booking site: public form, admin dashboard and appointments API."""

    def __init__(self, config: Optional[Mapping] = None, mailer=None):
        super().__init__(config, mailer)
        self._register_public_routes()
        self._register_admin_routes()
        self._register_api_routes()

    # =========================
    # Public
    # =========================
    def _register_public_routes(self):
        app = self.app

        @app.route("/")
        def index() -> str:
            return render_template("index.html")

        @app.route("/book-appointment", methods=["POST"])
        def book_appointment():
            try:
                result = self.appointments.book_appointment(_payload())
            except ValidationError as e:
                return jsonify({"error": e.message, "fields": e.fields}), 400
            except StorageError:
                return jsonify({"error": "Failed to save appointment."}), 500

            body = {
                "message": "Appointment booked successfully.",
                "appointment": result.appointment.to_dict(),
            }
            if not result.notified:
                body["warning"] = "Appointment saved, but confirmation emails could not be sent."
            return jsonify(body), 201

    # =========================
    # Admin pages
    # =========================
    def _register_admin_routes(self):
        app = self.app

        def render_dashboard(status: int = 200, **context):
            user_name = request.cookies.get(USER_NAME_COOKIE) or "Guest"
            if "appointments" not in context:
                try:
                    context["appointments"] = self.appointments.list_appointments()
                except StorageError:
                    context["appointments"] = []
                    context["error"] = "Error fetching appointments."
                    status = 500
            return render_template("dashboard.html", userName=user_name, **context), status

        @app.route("/admin/dashboard")
        @login_required
        def dashboard():
            return render_dashboard()

        @app.route("/admin/dashboard/add-appointment", methods=["POST"])
        @login_required
        def add_appointment():
            try:
                self.appointments.add_appointment(request.form)
            except ValidationError as e:
                return render_dashboard(400, error=e.message)
            except StorageError:
                return render_dashboard(500, error="Error adding appointment.")
            return render_dashboard(message="Appointment added successfully!")

        @app.route("/admin/login", methods=["GET", "POST"])
        def login():
            if request.method == "GET":
                return render_template("login.html", error=None)

            try:
                session = self.sessions.login(
                    request.form.get("email", ""), request.form.get("password", "")
                )
            except InvalidCredentials as e:
                return render_template("login.html", error=e.message), 401
            except StorageError:
                return render_template("login.html", error="An error occurred. Please try again."), 500

            response = make_response(redirect(url_for("dashboard")))
            response.set_cookie(
                TOKEN_COOKIE,
                session.token,
                max_age=COOKIE_MAX_AGE,
                httponly=True,
                secure=self.cookie_secure,
                samesite="Lax",
            )
            response.set_cookie(USER_NAME_COOKIE, session.user.name, max_age=COOKIE_MAX_AGE)
            return response

        @app.route("/admin/logout")
        def logout():
            response = make_response(redirect(url_for("login")))
            response.delete_cookie(TOKEN_COOKIE)
            response.delete_cookie(USER_NAME_COOKIE)
            return response

    # =========================
    # Appointments API
    # =========================
    def _register_api_routes(self):
        app = self.app

        @app.route("/api/appointments/<int:appointment_id>", methods=["GET"])
        @login_required
        def get_appointment(appointment_id: int):
            return jsonify(self.appointments.get_appointment(appointment_id).to_dict())

        @app.route("/api/appointments/<int:appointment_id>", methods=["PUT"])
        @login_required
        def update_appointment(appointment_id: int):
            appointment = self.appointments.update_appointment(appointment_id, _payload())
            return jsonify(appointment.to_dict())

        @app.route("/api/appointments/<int:appointment_id>", methods=["DELETE"])
        @login_required
        def delete_appointment(appointment_id: int):
            self.appointments.delete_appointment(appointment_id)
            return jsonify({"message": "Appointment deleted successfully."})


def create_app(config: Optional[Mapping] = None, mailer=None) -> Flask:
    return BookingApp(config, mailer).app


# =========================
# Run
# =========================
if __name__ == "__main__":
    BookingApp().run(port=int(os.getenv("PORT", 3000)))
