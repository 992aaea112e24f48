# backend/services/mailer.py
import smtplib
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

from config import Settings

logger = logging.getLogger(__name__)


class MailTransport:
    """SMTP transport, built once at startup and shared by every dispatch.

    Each ``send`` opens its own SMTP session, so concurrent dispatches need no
    locking here.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = True,
        ssl_tls: bool = False,
        timeout: float = 10.0,
        enabled: bool = True,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.starttls = starttls
        self.ssl_tls = ssl_tls
        self.timeout = timeout
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> "MailTransport":
        return cls(
            host=settings.MAIL_SERVER,
            port=settings.MAIL_PORT,
            username=settings.MAIL_USERNAME,
            password=settings.MAIL_PASSWORD,
            starttls=settings.MAIL_STARTTLS,
            ssl_tls=settings.MAIL_SSL_TLS,
            timeout=settings.MAIL_TIMEOUT,
            enabled=settings.EMAIL_ENABLED,
        )

    def _connect(self) -> smtplib.SMTP:
        if self.ssl_tls:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if self.starttls:
            smtp.starttls()
        return smtp

    def send(self, sender: str, recipients: List[str], subject: str, html: str) -> None:
        message = MIMEMultipart("alternative")
        message["From"] = sender
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message.attach(MIMEText(html, "html", "utf-8"))

        if not self.enabled:
            logger.info("EMAIL_ENABLED is false; skipping send of %r to %s", subject, message["To"])
            return

        with self._connect() as smtp:
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.sendmail(sender, recipients, message.as_string())
        logger.info("Sent %r to %s", subject, message["To"])
