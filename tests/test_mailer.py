# tests/test_mailer.py
# PURPOSE: mail rendering, non-fatal delivery and password reset tokens.

from todoapp.config import Settings
from todoapp.mailer import Mailer
from todoapp.security import create_reset_token, read_reset_token

from conftest import RecordingMailer


def test_otp_mail_contains_code_and_ttl(outbox):
    assert outbox.send_otp("a@b.com", "482913", "registration")
    html = outbox.sent[0]["html"]
    assert "482913" in html
    assert "10 minutes" in html
    assert "Account Registration Confirmation" in html


def test_password_reset_template_variant(outbox):
    outbox.send_otp("a@b.com", "482913", "password_reset")
    assert "Password Reset" in outbox.sent[0]["html"]


def test_welcome_mail_escapes_name(outbox):
    outbox.send_welcome("a@b.com", "<script>")
    assert "&lt;script&gt;" in outbox.sent[0]["html"]


def test_unconfigured_relay_reports_not_delivered():
    mailer = Mailer(Settings(SMTP_HOST=""))
    assert not mailer.configured
    assert mailer.send_otp("a@b.com", "482913", "registration") is False


def test_relay_failure_is_not_raised():
    mailer = RecordingMailer()
    mailer.fail = True
    assert mailer.send_welcome("a@b.com", "Dana") is False


def test_reset_token_round_trip():
    token = create_reset_token("a@b.com", "hash-1")
    assert read_reset_token(token, "hash-1") == "a@b.com"
    # a changed password hash retires the token
    assert read_reset_token(token, "hash-2") is None
    assert read_reset_token(token + "x", "hash-1") is None
    assert read_reset_token("", "hash-1") is None
