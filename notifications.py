# notifications.py
import logging
import smtplib
import ssl
from email.errors import MessageError
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import List, Optional

from errors import NotificationError
from models import Appointment

logger = logging.getLogger(__name__)


class SmtpMailer:
    """Sends HTML email through an SMTP server (465 = SSL, otherwise STARTTLS)."""

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        sender: str,
        timeout: float = 30,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout

    def send(self, recipient: str, subject: str, html: str) -> None:
        if not self.username or not self.password:
            raise NotificationError("SMTP credentials are not configured", [recipient])
        if not recipient:
            raise NotificationError("No recipient address", [recipient])

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = self.sender
            msg["To"] = recipient
            msg.attach(MIMEText(html, "html"))
            body = msg.as_string()

            if self.port == 465:
                context = ssl.create_default_context()
                server = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
                server.starttls(context=ssl.create_default_context())
            try:
                server.login(self.username, self.password)
                server.sendmail(self.sender.split("<")[-1].rstrip(">"), [recipient], body)
            finally:
                server.quit()
        # ValueError covers non-ASCII addresses, MessageError header injection
        except (smtplib.SMTPException, OSError, ValueError, MessageError) as e:
            raise NotificationError(f"SMTP send to {recipient} failed: {e}", [recipient]) from e

        logger.info(f"Email '{subject}' sent to {recipient}")


# -------------------------------------------------
# Booking emails


def _details(appointment: Appointment, rows) -> str:
    items = "\n".join(
        f"        <li><strong>{label}:</strong> {escape(str(value))}</li>" for label, value in rows
    )
    return f"      <ul>\n{items}\n      </ul>"


def business_email(appointment: Appointment) -> str:
    rows = [
        ("Customer Name", appointment.name),
        ("Phone", appointment.phone),
        ("Email", appointment.email),
        ("Category", appointment.category),
        ("Date", appointment.date.isoformat()),
        ("Time", appointment.time),
        ("Message", appointment.message or "N/A"),
    ]
    return (
        "      <h2>New Appointment Booking</h2>\n"
        "      <p>Dear Admin,</p>\n"
        "      <p>You have received a new appointment booking. Here are the details:</p>\n"
        f"{_details(appointment, rows)}\n"
    )


def customer_email(appointment: Appointment) -> str:
    rows = [
        ("Date", appointment.date.isoformat()),
        ("Time", appointment.time),
        ("Phone", appointment.phone),
        ("Message", appointment.message or "N/A"),
    ]
    return (
        "      <h2>Your Appointment Booking</h2>\n"
        f"      <p>Dear {escape(appointment.name)},</p>\n"
        "      <p>Thank you for booking your appointment. Here are the details:</p>\n"
        f"{_details(appointment, rows)}\n"
        "      <p>We look forward to seeing you!</p>\n"
    )


class BookingNotifier:
    """Sends the business and customer emails for a new booking."""

    def __init__(self, mailer, receiver: Optional[str]):
        self.mailer = mailer
        self.receiver = receiver

    def notify(self, appointment: Appointment) -> None:
        messages = [
            (self.receiver, "New Appointment Booking", business_email(appointment)),
            (appointment.email, "Appointment Confirmation", customer_email(appointment)),
        ]

        failed: List[str] = []
        for recipient, subject, html in messages:
            try:
                self.mailer.send(recipient, subject, html)
            except NotificationError as e:
                logger.error(f"Notification for appointment {appointment.id} failed: {e}")
                failed.append(recipient or "<unset>")
            except Exception:
                logger.exception(f"Unexpected mailer error for appointment {appointment.id}")
                failed.append(recipient or "<unset>")

        if failed:
            raise NotificationError(
                f"{len(failed)} of {len(messages)} booking emails could not be sent", failed
            )
