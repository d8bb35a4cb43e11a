"""
SMTP mail sender.
"""

import asyncio
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class SMTPMailer:
    """Sends plain-text mail through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 465,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_ssl: bool = True,
        sender_name: str = "Library Support",
        timeout: int = 15,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.sender_name = sender_name
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "SMTPMailer":
        return cls(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_ssl=config.smtp_use_ssl,
            sender_name=config.smtp_sender_name,
            timeout=config.smtp_timeout,
        )

    def build_message(self, recipient: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.sender_name, self.username or f"no-reply@{self.host}"))
        message["To"] = recipient
        message.set_content(body)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        if self.use_ssl:
            server = smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=ssl.create_default_context()
            )
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)

        with server:
            if not self.use_ssl:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls(context=ssl.create_default_context())
                    server.ehlo()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(message)

    async def send_mail(self, recipient: str, subject: str, body: str) -> bool:
        """
        Send a message.

        Args:
            recipient: Destination address
            subject: Subject line
            body: Plain-text body

        Returns:
            True if the relay accepted the message, False otherwise
        """
        message = self.build_message(recipient, subject, body)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery failed", recipient=recipient, host=self.host, error=str(e))
            return False

        logger.info("Mail delivered", recipient=recipient, subject=subject)
        return True
