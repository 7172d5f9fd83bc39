# core/mailer.py
"""
Async SMTP client for contact-form mail
Wraps aiosmtplib with explicit connection settings so the application
factory can build one client and hand it to the services that send mail.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from typing import Any, Dict, Optional

import aiosmtplib

logger = logging.getLogger(__name__)


class EmailSenderError(Exception):
    """Base exception for email sending operations"""
    pass


class SMTPConfigurationError(EmailSenderError):
    """SMTP configuration related errors"""
    pass


@dataclass
class SMTPSettings:
    """Connection parameters for one SMTP server"""
    host: str
    port: int
    username: str = ''
    password: str = ''
    secure: bool = False          # implicit TLS, usually port 465
    require_tls: bool = True      # STARTTLS must succeed when not secure
    validate_certs: bool = True
    connection_timeout: float = 30.0
    socket_timeout: float = 60.0

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'SMTPSettings':
        return cls(
            host=config.get('SMTP_HOST', ''),
            port=int(config.get('SMTP_PORT') or 587),
            username=config.get('EMAIL_USER', ''),
            password=config.get('EMAIL_PASSWORD', ''),
            secure=bool(config.get('SMTP_SECURE', False)),
            require_tls=bool(config.get('SMTP_REQUIRE_TLS', True)),
            validate_certs=bool(config.get('TLS_REJECT_UNAUTHORIZED', True)),
            connection_timeout=float(config.get('SMTP_CONNECTION_TIMEOUT', 30)),
            socket_timeout=float(config.get('SMTP_SOCKET_TIMEOUT', 60)),
        )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class OutgoingEmail:
    """A single message ready to be handed to the SMTP client"""
    to: str
    subject: str
    html: Optional[str] = None
    text: Optional[str] = None
    from_name: Optional[str] = None
    reply_to: Optional[str] = None


@dataclass
class SendResult:
    """Outcome of a delivered message"""
    message_id: str
    response: str
    sent_at: datetime


class ContactMailer:
    """
    SMTP client used by the contact endpoints

    Each call opens its own connection; nothing is pooled between requests.
    """

    def __init__(self, settings: SMTPSettings, sender: Optional[str] = None):
        self.settings = settings
        self.sender = sender or settings.username

    def build_message(self, email: OutgoingEmail) -> MIMEMultipart:
        """Create a multipart/alternative message with proper headers"""
        if not self.sender:
            raise SMTPConfigurationError("No sender address configured (EMAIL_USER)")
        if not email.html and not email.text:
            raise EmailSenderError("Message has neither HTML nor text content")

        msg = MIMEMultipart('alternative')
        msg['Subject'] = email.subject
        msg['From'] = formataddr((email.from_name, self.sender)) if email.from_name else self.sender
        msg['To'] = email.to
        msg['Date'] = formatdate(localtime=True)
        domain = self.sender.rsplit('@', 1)[-1] if '@' in self.sender else 'localhost'
        msg['Message-ID'] = make_msgid(domain=domain)

        if email.reply_to:
            msg['Reply-To'] = email.reply_to

        if email.text:
            msg.attach(MIMEText(email.text, 'plain', 'utf-8'))
        if email.html:
            msg.attach(MIMEText(email.html, 'html', 'utf-8'))

        return msg

    def _client(self) -> aiosmtplib.SMTP:
        if not self.settings.host:
            raise SMTPConfigurationError("SMTP host is not configured (SMTP_HOST)")
        return aiosmtplib.SMTP(
            hostname=self.settings.host,
            port=self.settings.port,
            use_tls=self.settings.secure,
            start_tls=False,  # upgraded explicitly in _open
            validate_certs=self.settings.validate_certs,
            timeout=self.settings.socket_timeout,
        )

    async def _open(self) -> aiosmtplib.SMTP:
        smtp = self._client()
        await smtp.connect(timeout=self.settings.connection_timeout)
        try:
            if not self.settings.secure:
                await smtp.ehlo()
                if self.settings.require_tls or smtp.supports_extension('starttls'):
                    await smtp.starttls()

            if self.settings.username and self.settings.password:
                await smtp.login(self.settings.username, self.settings.password)
        except Exception:
            smtp.close()
            raise
        return smtp

    async def verify(self) -> bool:
        """Connect, negotiate TLS and authenticate without sending anything"""
        smtp = await self._open()
        try:
            await smtp.noop()
        finally:
            await self._close(smtp)
        logger.info(f"SMTP connection verified for {self.settings.address}")
        return True

    async def send(self, email: OutgoingEmail) -> SendResult:
        """
        Deliver one message

        Raises:
            SMTPConfigurationError: missing host or sender
            aiosmtplib.SMTPException: any transport-level failure
        """
        msg = self.build_message(email)
        smtp = await self._open()
        try:
            _, response = await smtp.send_message(msg)
        finally:
            await self._close(smtp)

        logger.debug(f"SMTP accepted {msg['Message-ID']} for {email.to}: {response}")
        return SendResult(
            message_id=msg['Message-ID'],
            response=response,
            sent_at=datetime.now(timezone.utc),
        )

    @staticmethod
    async def _close(smtp: aiosmtplib.SMTP) -> None:
        try:
            await smtp.quit()
        except aiosmtplib.SMTPException as e:
            logger.debug(f"SMTP quit failed, closing transport: {e}")
            smtp.close()
