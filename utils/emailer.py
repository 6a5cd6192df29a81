"""Outbound mail over SMTP.

Sending is best-effort: callers get ``(ok, error)`` back and decide what to
record; nothing here raises for delivery problems.
"""
import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10


def _sender():
    cfg = current_app.config
    return cfg.get("SMTP_FROM_EMAIL") or cfg.get("SMTP_USERNAME")


def send_email(to_email: str, subject: str, body: str):
    cfg = current_app.config
    host = cfg.get("SMTP_HOST")
    if not host or not _sender():
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = _sender()
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, cfg.get("SMTP_PORT", 587), timeout=SMTP_TIMEOUT_SECONDS) as server:
            if cfg.get("SMTP_USE_TLS", True):
                server.starttls()
            if cfg.get("SMTP_USERNAME") and cfg.get("SMTP_PASSWORD"):
                server.login(cfg["SMTP_USERNAME"], cfg["SMTP_PASSWORD"])
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Sending %r to %s failed: %s", subject, to_email, exc)
        return False, str(exc)

    logger.info("Sent %r to %s", subject, to_email)
    return True, None


def send_reservation_confirmation(user, reservation, summary: str):
    lines = [f"Hi {user.display_name},", "", summary]
    if reservation.player_names:
        lines += ["", f"Playing with: {', '.join(reservation.player_names)}"]
    if any(reservation.play_for_money):
        lines += ["", f"Playing for money: {sum(reservation.play_for_money)} of {reservation.slots}"]
    lines += ["", "See you on the course!"]
    return send_email(user.email, "Tee time confirmed", "\n".join(lines))
