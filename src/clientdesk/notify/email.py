"""Welcome-email notifications over SMTP.

There is no module-level transport. Build an ``EmailConfig`` once at process
start, call ``init_transport`` and check the returned ``TransportInit`` before
handing the transport to an ``EmailNotifier``.
"""

from __future__ import annotations

import os
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from html import escape
from typing import Any, Callable, Mapping, Optional, Protocol

from ..api.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_USERS = ("your-email@gmail.com",)
DEFAULT_SUBJECT = "Welcome aboard!"


@dataclass(frozen=True)
class EmailConfig:
    host: Optional[str] = None
    port: int = 587
    secure: bool = False  # implicit TLS (SMTPS); otherwise STARTTLS when available
    user: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None
    timeout_seconds: float = 20.0

    @property
    def configured(self) -> bool:
        return bool(
            self.host
            and self.user
            and self.password
            and self.user not in PLACEHOLDER_USERS
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "EmailConfig":
        data = data or {}
        return cls(
            host=data.get("host"),
            port=int(data.get("port") or 587),
            secure=bool(data.get("secure", False)),
            user=data.get("user"),
            password=data.get("password"),
            sender=data.get("sender"),
            timeout_seconds=float(data.get("timeout_seconds") or 20.0),
        )

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        base: Optional["EmailConfig"] = None,
    ) -> "EmailConfig":
        """Overlay EMAIL_* environment variables on ``base`` (or defaults)."""
        env = os.environ if environ is None else environ
        base = base or cls()
        port = env.get("EMAIL_PORT")
        if port:
            try:
                port_number = int(port)
            except ValueError:
                raise ConfigError(f"Invalid EMAIL_PORT: {port!r} is not a number")
        else:
            port_number = base.port
        secure = env.get("EMAIL_SECURE")
        return cls(
            host=env.get("EMAIL_HOST") or base.host,
            port=port_number,
            secure=(secure.lower() == "true") if secure is not None else base.secure,
            user=env.get("EMAIL_USER") or base.user,
            password=env.get("EMAIL_PASS") or base.password,
            sender=env.get("EMAIL_FROM") or base.sender,
            timeout_seconds=base.timeout_seconds,
        )


class Transport(Protocol):
    def send(self, message: EmailMessage) -> str: ...


class SmtpTransport:
    """Opens one SMTP connection per message."""

    def __init__(
        self,
        config: EmailConfig,
        smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None,
    ):
        self.config = config
        if smtp_factory is None:
            smtp_factory = smtplib.SMTP_SSL if config.secure else smtplib.SMTP
        self._smtp_factory = smtp_factory

    def _connect(self) -> smtplib.SMTP:
        smtp = self._smtp_factory(self.config.host, self.config.port, timeout=self.config.timeout_seconds)
        try:
            if not self.config.secure and smtp.has_extn("starttls"):
                smtp.starttls(context=ssl.create_default_context())
            smtp.login(self.config.user, self.config.password)
        except Exception:
            smtp.close()
            raise
        return smtp

    def verify(self) -> None:
        smtp = self._connect()
        smtp.quit()

    def send(self, message: EmailMessage) -> str:
        if not message.get("Message-ID"):
            message["Message-ID"] = make_msgid()
        smtp = self._connect()
        try:
            smtp.send_message(message)
        finally:
            smtp.quit()
        return message["Message-ID"]


@dataclass(frozen=True)
class TransportInit:
    ok: bool
    reason: Optional[str] = None
    transport: Optional[Transport] = None


def init_transport(
    config: EmailConfig,
    *,
    verify: bool = False,
    transport_factory: Callable[[EmailConfig], Transport] = SmtpTransport,
) -> TransportInit:
    """
    Build the transport for ``config``.

    Args:
        config: Email settings
        verify: Open and authenticate one connection up front
        transport_factory: Builds the transport (swap in tests)

    Returns:
        TransportInit; ``ok`` is False with a reason when the service is not
        configured or verification failed.
    """
    if not config.configured:
        logger.info("Email service not configured; notifications disabled")
        return TransportInit(ok=False, reason="Email service not configured")
    if not config.sender:
        return TransportInit(ok=False, reason="Email sender address (EMAIL_FROM) not configured")

    transport = transport_factory(config)
    if verify:
        try:
            transport.verify()
        except (OSError, smtplib.SMTPException) as exc:
            logger.warning("Email transport verification failed: %s", exc)
            return TransportInit(ok=False, reason=f"SMTP verification failed: {exc}")
    logger.info("Email service initialized (%s:%s)", config.host, config.port)
    return TransportInit(ok=True, transport=transport)


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def render_welcome_text(client: Mapping[str, Any]) -> str:
    return f"Hi {client.get('name')}, welcome to our client management system!"


def render_welcome_html(client: Mapping[str, Any]) -> str:
    """Minimal HTML body listing the registered client details."""
    details = [
        ("Name", client.get("name")),
        ("Email", client.get("email")),
        ("Company", client.get("company")),
        ("City", client.get("city")),
        ("Phone", client.get("phone")),
    ]
    items = "".join(
        f"<li><strong>{label}:</strong> {escape(str(value))}</li>"
        for label, value in details
        if value
    )
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"><title>Welcome</title></head><body>"
        f"<h2>Hi {escape(str(client.get('name') or ''))}!</h2>"
        "<p>Your details have been registered successfully.</p>"
        f"<ul>{items}</ul>"
        "<p>Our team will contact you soon.</p>"
        "</body></html>"
    )


class EmailNotifier:
    """Sends notifications through an initialized transport."""

    def __init__(self, init: TransportInit, sender: str):
        if not init.ok or init.transport is None:
            raise ValueError(f"Email transport not initialized: {init.reason}")
        self.transport = init.transport
        self.sender = sender

    def build_welcome_message(self, client: Mapping[str, Any]) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = client["email"]
        message["Subject"] = DEFAULT_SUBJECT
        message.set_content(render_welcome_text(client))
        message.add_alternative(render_welcome_html(client), subtype="html")
        return message

    def send_welcome_email(self, client: Mapping[str, Any]) -> SendResult:
        if not client.get("email"):
            return SendResult(success=False, error="Client has no email address")
        message = self.build_welcome_message(client)
        try:
            message_id = self.transport.send(message)
        except (OSError, smtplib.SMTPException) as exc:
            logger.error("Email send error for %s: %s", client.get("email"), exc)
            return SendResult(success=False, error=str(exc))
        logger.info("Welcome email sent to %s: %s", client.get("email"), message_id)
        return SendResult(success=True, message_id=message_id)


def build_notifier(config: EmailConfig, *, verify: bool = False) -> tuple[Optional[EmailNotifier], TransportInit]:
    """Initialize the transport and wrap it, or return (None, failed init)."""
    init = init_transport(config, verify=verify)
    if not init.ok:
        return None, init
    return EmailNotifier(init, sender=config.sender or ""), init

