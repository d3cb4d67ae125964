import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from salonbook.core.config import settings
from salonbook.models.booking import Booking, BookingStatus

logger = logging.getLogger(__name__)

_STATUS_HEADLINES = {
    BookingStatus.CONFIRMED: "Your booking is confirmed",
    BookingStatus.CANCELLED: "Your booking was cancelled",
    BookingStatus.COMPLETED: "Thanks for visiting",
}


def _send_email_sync(to_email: str, subject: str, html_body: str) -> None:
    """Send email via SMTP (blocking). Use from background task."""
    if not settings.email_enabled:
        logger.debug("Email disabled (SMTP not configured), skipping send")
        return
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
    except Exception as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)


def _html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def build_booking_html(headline: str, intro: str, booking: Booking) -> str:
    when = f"{booking.date.strftime('%A, %B %d, %Y')} at {booking.time}"
    service = _html_escape(booking.service_name or booking.service_id)
    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{_html_escape(headline)}</title></head>
<body style="margin:0;padding:24px;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background-color:#f3f4f6;">
  <div style="max-width:560px;margin:0 auto;background:#ffffff;border-radius:12px;padding:32px;">
    <h1 style="margin:0 0 8px 0;font-size:22px;color:#111827;">{_html_escape(headline)}</h1>
    <p style="margin:0 0 24px 0;font-size:15px;color:#6b7280;">{intro}</p>
    <p style="margin:0;font-size:16px;font-weight:600;color:#111827;">{service}</p>
    <p style="margin:4px 0 0 0;font-size:15px;color:#374151;">{when}</p>
  </div>
  <p style="text-align:center;font-size:13px;color:#6b7280;">{settings.site_name}</p>
</body>
</html>
"""


def send_booking_request_email(to_email: str, booking: Booking) -> None:
    """Tell the salon a customer requested a slot (call from background task)."""
    customer = _html_escape(booking.customer_name or "A customer")
    html = build_booking_html(
        "New booking request",
        f"{customer} requested an appointment. Confirm or reject it from your dashboard.",
        booking,
    )
    _send_email_sync(to_email, f"{settings.site_name} – New booking request", html)


def send_booking_status_email(to_email: str, recipient_name: str | None, booking: Booking) -> None:
    headline = _STATUS_HEADLINES.get(booking.status)
    if headline is None:
        return
    html = build_booking_html(
        headline,
        f"Hi {_html_escape(recipient_name or 'there')}, here is the latest on your appointment.",
        booking,
    )
    _send_email_sync(to_email, f"{settings.site_name} – {headline}", html)
