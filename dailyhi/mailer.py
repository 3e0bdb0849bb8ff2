"""
Daily Hi Mail Delivery

SMTP and console mailers sharing one ``send(to, subject, body)`` call.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional

from dailyhi.errors import SendError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageBody:
    """Text part, HTML part, or both. At least one must be present."""

    text: Optional[str] = None
    html: Optional[str] = None

    def __post_init__(self):
        if self.text is None and self.html is None:
            raise ValueError("MessageBody needs a text or html part")

    @classmethod
    def plain(cls, text: str) -> "MessageBody":
        return cls(text=text)

    @classmethod
    def rich(cls, html: str, text: Optional[str] = None) -> "MessageBody":
        return cls(text=text, html=html)


def build_message(sender: str, to: str, subject: str, body: MessageBody) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain=sender.rpartition("@")[2].rstrip(">") or None)

    if body.text is not None:
        message.set_content(body.text)
        if body.html is not None:
            message.add_alternative(body.html, subtype="html")
    else:
        message.set_content(body.html, subtype="html")
    return message


class SmtpMailer:
    """Sends mail through an SMTP relay."""

    def __init__(
        self,
        sender: str,
        host: str = "localhost",
        port: int = 25,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
        timeout: float = 30.0,
    ):
        self.sender = sender
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to: str, subject: str, body: MessageBody) -> None:
        """Deliver one message or raise SendError."""
        message = build_message(self.sender, to, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise SendError(f"Failed to send to {to}: {e}") from e
        logger.info(f"Sent '{subject}' to {to}")


class ConsoleMailer:
    """Logs messages instead of sending them; keeps an outbox for inspection."""

    def __init__(self, sender: str):
        self.sender = sender
        self.outbox = []

    def send(self, to: str, subject: str, body: MessageBody) -> None:
        message = build_message(self.sender, to, subject, body)
        self.outbox.append(message)
        logger.info(f"📧 [console] To: {to} | Subject: {subject}")


def mailer_from_config(config) -> "SmtpMailer | ConsoleMailer":
    """Build the mailer selected by MAIL_TRANSPORT."""
    transport = config.get("MAIL_TRANSPORT", "smtp")
    if transport == "console":
        return ConsoleMailer(config["MAIL_FROM"])
    if transport == "smtp":
        return SmtpMailer(
            sender=config["MAIL_FROM"],
            host=config["SMTP_HOST"],
            port=config["SMTP_PORT"],
            username=config.get("SMTP_USER"),
            password=config.get("SMTP_PASSWORD"),
            use_tls=config.get("SMTP_USE_TLS", False),
            timeout=config.get("SEND_TIMEOUT_SECONDS", 30.0),
        )
    raise ValueError(f"Unknown MAIL_TRANSPORT: {transport}")
