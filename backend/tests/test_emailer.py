"""Tests for outgoing email."""
import smtplib
from unittest.mock import patch

from erms import emailer


class TestSendEmail:
    def test_logs_when_smtp_not_configured(self, caplog):
        with patch("erms.config.SMTP_HOST", ""), patch("erms.emailer.smtplib.SMTP") as smtp:
            with caplog.at_level("INFO", logger="erms.emailer"):
                assert emailer.send_email("student@school.edu", "Hello", "Body text") is True

        smtp.assert_not_called()
        assert "Body text" in caplog.text

    @patch("erms.config.SMTP_USE_TLS", True)
    @patch("erms.config.SMTP_USER", "mailer")
    @patch("erms.config.SMTP_PASSWORD", "mail-pass")
    @patch("erms.config.SMTP_PORT", 2525)
    @patch("erms.config.SMTP_HOST", "smtp.school.edu")
    def test_sends_through_smtp(self):
        with patch("erms.emailer.smtplib.SMTP") as smtp:
            server = smtp.return_value.__enter__.return_value

            assert emailer.send_email("student@school.edu", "Hello", "Body", html="<p>Body</p>") is True

        smtp.assert_called_once_with("smtp.school.edu", 2525, timeout=30)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "mail-pass")
        message = server.send_message.call_args[0][0]
        assert message["To"] == "student@school.edu"
        assert message["Subject"] == "Hello"

    @patch("erms.config.SMTP_USER", "")
    @patch("erms.config.SMTP_HOST", "smtp.school.edu")
    def test_skips_login_without_user(self):
        with patch("erms.emailer.smtplib.SMTP") as smtp:
            server = smtp.return_value.__enter__.return_value
            emailer.send_email("student@school.edu", "Hello", "Body")

        server.login.assert_not_called()

    @patch("erms.config.SMTP_HOST", "smtp.school.edu")
    def test_smtp_failure_returns_false(self):
        with patch("erms.emailer.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
            assert emailer.send_email("student@school.edu", "Hello", "Body") is False

    @patch("erms.config.SMTP_HOST", "smtp.school.edu")
    def test_network_failure_returns_false(self):
        with patch("erms.emailer.smtplib.SMTP", side_effect=OSError("unreachable")):
            assert emailer.send_email("student@school.edu", "Hello", "Body") is False


class TestOtpEmail:
    def test_code_in_message(self):
        with patch("erms.emailer.send_email", return_value=True) as send:
            assert emailer.send_otp_email("student@school.edu", "482913") is True

        to, subject, body, html = send.call_args[0]
        assert to == "student@school.edu"
        assert "482913" in body
        assert "10 minutes" in body
        assert "482913" in html
