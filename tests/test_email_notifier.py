"""Tests for welcome-email configuration and sending."""

import smtplib

import pytest

from clientdesk.api.errors import ConfigError
from clientdesk.notify.email import (
    EmailConfig,
    EmailNotifier,
    SmtpTransport,
    TransportInit,
    build_notifier,
    init_transport,
    render_welcome_html,
)

CONFIGURED = EmailConfig(host="smtp.example.com", user="desk@example.com", password="secret", sender="Desk <desk@example.com>")
CLIENT = {"id": "CLI-1", "name": "Anna <b>", "email": "anna@example.com", "company": "Acme", "city": "Rome"}


class RecordingTransport:
    def __init__(self, config=None, fail=None):
        self.config = config
        self.fail = fail
        self.sent = []
        self.verified = False

    def verify(self):
        if self.fail:
            raise self.fail
        self.verified = True

    def send(self, message):
        if self.fail:
            raise self.fail
        self.sent.append(message)
        return "<id-1@example.com>"


class FakeSmtp:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls = []
        FakeSmtp.instances.append(self)

    def has_extn(self, name):
        return name == "starttls"

    def starttls(self, context=None):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user))

    def send_message(self, message):
        self.calls.append(("send", message["To"]))

    def quit(self):
        self.calls.append("quit")

    def close(self):
        self.calls.append("close")


def test_env_overrides_file_settings():
    base = EmailConfig(host="file-host", port=25, user="file-user", password="pw")
    env = {"EMAIL_HOST": "env-host", "EMAIL_PORT": "465", "EMAIL_SECURE": "true", "EMAIL_FROM": "x@example.com"}

    config = EmailConfig.from_env(env, base=base)

    assert config.host == "env-host"
    assert config.port == 465
    assert config.secure is True
    assert config.user == "file-user"
    assert config.sender == "x@example.com"


def test_placeholder_credentials_are_not_configured():
    config = EmailConfig(host="smtp.gmail.com", user="your-email@gmail.com", password="x", sender="a@b.it")
    init = init_transport(config)

    assert not config.configured
    assert init.ok is False
    assert init.reason == "Email service not configured"


def test_missing_sender_is_reported():
    config = EmailConfig(host="smtp.example.com", user="u", password="p")
    assert init_transport(config).reason == "Email sender address (EMAIL_FROM) not configured"


def test_verification_failure_is_reported():
    init = init_transport(
        CONFIGURED,
        verify=True,
        transport_factory=lambda cfg: RecordingTransport(cfg, fail=smtplib.SMTPAuthenticationError(535, b"bad")),
    )
    assert init.ok is False
    assert init.reason.startswith("SMTP verification failed")


def test_notifier_requires_initialized_transport():
    with pytest.raises(ValueError, match="not initialized"):
        EmailNotifier(TransportInit(ok=False, reason="Email service not configured"), sender="a@b.it")
    notifier, init = build_notifier(EmailConfig())
    assert notifier is None
    assert not init.ok


def test_welcome_email_is_sent_with_escaped_html():
    transport = RecordingTransport()
    notifier = EmailNotifier(TransportInit(ok=True, transport=transport), sender=CONFIGURED.sender)

    result = notifier.send_welcome_email(CLIENT)

    assert result.success
    assert result.message_id == "<id-1@example.com>"
    message = transport.sent[0]
    assert message["To"] == "anna@example.com"
    assert message["From"] == "Desk <desk@example.com>"
    assert "Anna &lt;b&gt;" in render_welcome_html(CLIENT)


def test_send_failure_returns_error_result():
    transport = RecordingTransport(fail=smtplib.SMTPServerDisconnected("gone"))
    notifier = EmailNotifier(TransportInit(ok=True, transport=transport), sender="a@b.it")

    result = notifier.send_welcome_email(CLIENT)

    assert not result.success
    assert result.error == "gone"
    assert notifier.send_welcome_email({"name": "No Mail"}).error == "Client has no email address"


def test_smtp_transport_uses_starttls_and_login():
    FakeSmtp.instances.clear()
    transport = SmtpTransport(CONFIGURED, smtp_factory=FakeSmtp)
    notifier = EmailNotifier(TransportInit(ok=True, transport=transport), sender=CONFIGURED.sender)

    result = notifier.send_welcome_email(CLIENT)

    assert result.success
    assert result.message_id
    smtp = FakeSmtp.instances[0]
    assert smtp.calls == ["starttls", ("login", "desk@example.com"), ("send", "anna@example.com"), "quit"]


def test_non_numeric_port_is_a_config_error():
    with pytest.raises(ConfigError, match="Invalid EMAIL_PORT: 'smtp'"):
        EmailConfig.from_env({"EMAIL_PORT": "smtp"})
