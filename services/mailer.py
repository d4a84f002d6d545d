"""Outbound email capability.

The token services only ever call ``Mailer.send``; which transport sits
behind it is decided by configuration (``MAIL_BACKEND``).
"""

from __future__ import annotations

import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from .errors import DeliveryError

logger = logging.getLogger("user_api.mailer")


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str = ""


class Mailer(ABC):
    """Interface for email transports."""

    @abstractmethod
    def send(self, message: EmailMessage) -> None:
        """Deliver ``message`` or raise ``DeliveryError``."""


class LogMailer(Mailer):
    """Record messages instead of sending them; used in development and tests."""

    def __init__(self) -> None:
        self.outbox: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.outbox.append(message)
        logger.info("Email queued to log backend", extra={"to": message.to, "subject": message.subject})


class SMTPMailer(Mailer):
    """Send messages through an SMTP relay with optional STARTTLS."""

    def __init__(
        self,
        server: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.server = server
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

        if not self.password:
            logger.warning("SMTP password not configured (MAIL_PASSWORD). Email sending will fail.")

    def _build(self, message: EmailMessage) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        if message.text:
            msg.attach(MIMEText(message.text, "plain"))
        msg.attach(MIMEText(message.html, "html"))
        return msg

    def send(self, message: EmailMessage) -> None:
        try:
            with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(self._build(message))
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"Failed to send email to {message.to}: {exc}") from exc

        logger.info("Email sent", extra={"to": message.to, "subject": message.subject})


def mailer_from_config(config) -> Mailer:
    """Build the mailer named by ``MAIL_BACKEND``."""

    backend = (config.get("MAIL_BACKEND") or "log").lower()
    if backend == "smtp":
        return SMTPMailer(
            server=config.get("MAIL_SERVER", "localhost"),
            port=int(config.get("MAIL_PORT", 587)),
            sender=config.get("MAIL_DEFAULT_SENDER") or config.get("MAIL_USERNAME") or "",
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            use_tls=bool(config.get("MAIL_USE_TLS", True)),
        )
    if backend == "log":
        return LogMailer()
    raise ValueError(f"Unknown MAIL_BACKEND: {backend!r}")
