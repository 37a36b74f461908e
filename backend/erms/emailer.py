"""Outgoing email over SMTP."""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from erms import config
from erms.config import OTP_EXPIRE_MINUTES

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, body: str, html: Optional[str] = None) -> bool:
    """Send a message and report whether it was handed to the SMTP server.

    With no SMTP host configured the message is written to the log instead,
    which is what development setups rely on to read reset codes.
    """
    if not config.SMTP_HOST:
        logger.info(f"SMTP not configured; email to {to} not sent. Subject: {subject}\n{body}")
        return True

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = config.SMTP_FROM
    msg["To"] = to
    msg.attach(MIMEText(body, "plain"))
    if html:
        msg.attach(MIMEText(html, "html"))

    try:
        with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=30) as server:
            if config.SMTP_USE_TLS:
                server.starttls()
            if config.SMTP_USER:
                server.login(config.SMTP_USER, config.SMTP_PASSWORD)
            server.send_message(msg)
        logger.info(f"Email sent to {to}: {subject}")
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to}: {e}")
        return False


def send_otp_email(to: str, code: str) -> bool:
    subject = "ERMS password reset code"
    body = (
        f"Your password reset code is {code}.\n\n"
        f"The code expires in {OTP_EXPIRE_MINUTES} minutes. "
        "If you did not request a password reset you can ignore this email."
    )
    html = (
        "<p>Your password reset code is:</p>"
        f"<p style=\"font-size:24px;font-weight:bold;letter-spacing:4px\">{code}</p>"
        f"<p>The code expires in {OTP_EXPIRE_MINUTES} minutes.</p>"
    )
    return send_email(to, subject, body, html)
