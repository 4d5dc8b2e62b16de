"""Tests for the acknowledgement notifier and the SMTP client."""

import smtplib
from email import message_from_string
from unittest.mock import patch

import pytest

from vrise_intake.emails.email_client import Attachment, build_message, render_template, send_email
from vrise_intake.emails.notifier import Notifier
from vrise_intake.exceptions import NotificationError


def test_notify_sends_acknowledgement_and_admin_copy(notifier, transport):
    resume = Attachment("cv.pdf", b"%PDF", "application/pdf")

    sent = notifier.notify("asha@x.com", "Hello", "<p>hi</p>", [resume])

    assert sent is True
    assert transport.sent[0] == {
        "recipient": "asha@x.com",
        "subject": "Hello",
        "body": "<p>hi</p>",
        "attachments": [],
    }
    assert transport.sent[1]["recipient"] == "admin@example.com"
    assert transport.sent[1]["subject"] == "[Admin Copy] Hello"
    assert transport.sent[1]["attachments"] == [resume]


def test_notify_disabled_returns_false(settings, transport):
    settings = settings.model_copy(update={"email_enabled": False})

    assert Notifier(settings, transport=transport).notify("asha@x.com", "Hello", "<p>hi</p>") is False
    assert transport.sent == []


def test_notify_attempts_admin_copy_after_failure(notifier, transport):
    transport.failing.add("asha@x.com")

    assert notifier.notify("asha@x.com", "Hello", "<p>hi</p>") is False
    assert [message["recipient"] for message in transport.sent] == ["admin@example.com"]


def test_notify_reports_admin_copy_failure(notifier, transport):
    transport.failing.add("admin@example.com")

    assert notifier.notify("asha@x.com", "Hello", "<p>hi</p>") is False
    assert [message["recipient"] for message in transport.sent] == ["asha@x.com"]


def test_notify_never_raises(settings):
    def broken_transport(*args, **kwargs):
        raise RuntimeError("boom")

    assert Notifier(settings, transport=broken_transport).notify("asha@x.com", "Hello", "<p>hi</p>") is False


def test_build_message_with_attachment():
    msg = build_message(
        "V Rise <mailer@example.com>", "asha@x.com", "Hello", "<p>hi</p>",
        [Attachment("cv.pdf", b"%PDF-1.4", "application/pdf")],
    )

    parsed = message_from_string(msg.as_string())
    parts = parsed.get_payload()
    assert parsed["To"] == "asha@x.com"
    assert parts[0].get_content_type() == "text/html"
    assert parts[1].get_content_type() == "application/pdf"
    assert parts[1].get_filename() == "cv.pdf"
    assert parts[1].get_payload(decode=True) == b"%PDF-1.4"


def test_build_message_defaults_content_type():
    msg = build_message("a@example.com", "b@example.com", "Hi", "<p>hi</p>", [Attachment("blob", b"\x00\x01")])
    assert msg.get_payload()[1].get_content_type() == "application/octet-stream"


def test_send_email_uses_starttls_and_login(settings):
    with patch("vrise_intake.emails.email_client.smtplib.SMTP") as smtp:
        send_email(settings, "asha@x.com", "Hello", "<p>hi</p>")

    smtp.assert_called_once_with("smtp.gmail.com", 587, timeout=10.0)
    server = smtp.return_value.__enter__.return_value
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("mailer@example.com", "app-password")
    server.sendmail.assert_called_once()
    assert server.sendmail.call_args.args[1] == ["asha@x.com"]


@pytest.mark.parametrize("error", [
    smtplib.SMTPAuthenticationError(535, b"bad credentials"),
    smtplib.SMTPRecipientsRefused({"asha@x.com": (550, b"no such user")}),
    smtplib.SMTPServerDisconnected("gone"),
    ConnectionRefusedError("refused"),
])
def test_send_email_raises_notification_error(settings, error):
    with patch("vrise_intake.emails.email_client.smtplib.SMTP") as smtp:
        smtp.return_value.__enter__.return_value.sendmail.side_effect = error
        with pytest.raises(NotificationError) as exc_info:
            send_email(settings, "asha@x.com", "Hello", "<p>hi</p>")

    assert exc_info.value.recipient == "asha@x.com"


def test_render_template_lists_summary():
    body = render_template(
        "mock_interview_booking.html",
        title="Mock Interview Booking Received",
        name="Ravi",
        fields={"stack": "Python Development"},
        summary=[("Name", "Ravi"), ("Stack", "Python Development")],
    )
    assert "<h2>Mock Interview Booking Received</h2>" in body
    assert "<strong>Stack:</strong> Python Development" in body
    assert "Your mock interview for Python Development is booked." in body


def test_send_email_rejects_header_injection_without_connecting(settings):
    with patch("vrise_intake.emails.email_client.smtplib.SMTP") as smtp:
        with pytest.raises(NotificationError):
            send_email(settings, "asha@x.com", "Hello\r\nBcc: x@y.com", "<p>hi</p>")

    smtp.assert_not_called()
