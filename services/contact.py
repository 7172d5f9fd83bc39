# services/contact.py
"""
Contact form processing
Sends the support notification and the auto-reply for a submission,
records the outcome in the submission log, and backs the utility endpoints
(test email, SMTP verification, raw saves and the submissions view).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import getaddresses
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.email_templates import EmailTemplateRenderer
from core.mailer import ContactMailer, OutgoingEmail, SendResult
from core.models import Submission, backup_record
from core.submission_log import SubmissionLog

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('name', 'email', 'service', 'message')
DISPLAY_TIME_FORMAT = '%Y/%m/%d, %H:%M:%S'


def header_safe(value: Any) -> str:
    """Strip line breaks so user input cannot inject extra headers"""
    return str(value or '').replace('\r', ' ').replace('\n', ' ').strip()


def single_address(value: Any) -> Optional[str]:
    """The one mailbox in `value`, or None when it names zero or several"""
    addresses = [addr for _, addr in getaddresses([header_safe(value)]) if addr]
    if len(addresses) != 1 or '@' not in addresses[0]:
        return None
    return addresses[0]


@dataclass
class ContactForm:
    """Fields posted by the website contact form"""
    name: Any = None
    email: Any = None
    service: Any = None
    message: Any = None
    phone: Any = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'ContactForm':
        return cls(
            name=payload.get('name'),
            email=payload.get('email'),
            service=payload.get('service'),
            message=payload.get('message'),
            phone=payload.get('phone'),
        )

    def missing_fields(self) -> List[str]:
        return [f for f in REQUIRED_FIELDS if not getattr(self, f)]

    def received(self) -> Dict[str, Any]:
        return {f: getattr(self, f) for f in REQUIRED_FIELDS if getattr(self, f) is not None}


@dataclass
class SubmissionOutcome:
    """What happened to one submission"""
    submission: Submission
    submitted_at: str
    support_sent: bool
    auto_reply_sent: bool
    saved: bool
    error: Optional[str] = None

    @property
    def reference(self) -> str:
        return self.submission.id

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ContactService:
    """Coordinates the mailer, the email templates and the submission log"""

    def __init__(self,
                 mailer: ContactMailer,
                 submission_log: SubmissionLog,
                 renderer: EmailTemplateRenderer,
                 support_address: str,
                 brand_name: str,
                 service_name: str,
                 display_timezone: str = 'Africa/Johannesburg'):
        self.mailer = mailer
        self.log = submission_log
        self.renderer = renderer
        self.support_address = support_address
        self.brand_name = brand_name
        self.service_name = service_name
        try:
            self.tz = ZoneInfo(display_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown display timezone {display_timezone!r}, using UTC")
            self.tz = timezone.utc

    def display_time(self, moment: Optional[datetime] = None) -> str:
        moment = moment or datetime.now(timezone.utc)
        return moment.astimezone(self.tz).strftime(DISPLAY_TIME_FORMAT)

    async def submit(self, form: ContactForm) -> SubmissionOutcome:
        """
        Handle a validated contact submission

        Each email is attempted independently and a failure of either one is
        only logged. The record is always written; if that write fails, a
        failed record is attempted instead and the outcome carries the error.
        """
        submission = Submission.new(
            name=form.name,
            email=form.email,
            service=form.service,
            message=form.message,
            phone=form.phone,
        )
        submitted_at = self.display_time()

        logger.info(f"Processing submission: {submission.id}")
        logger.info(f"From: {form.name} <{form.email}>, service: {form.service}")

        try:
            support_result = await self._send_support_notification(submission, submitted_at)
            auto_reply_result = await self._send_auto_reply(submission)

            submission.support_message_id = support_result.message_id if support_result else None
            submission.auto_reply_message_id = auto_reply_result.message_id if auto_reply_result else None

            self.log.append(submission.to_record())

            return SubmissionOutcome(
                submission=submission,
                submitted_at=submitted_at,
                support_sent=support_result is not None,
                auto_reply_sent=auto_reply_result is not None,
                saved=True,
            )
        except Exception as e:
            logger.error(f"General error processing {submission.id}: {e}", exc_info=True)

            submission.mark_failed(str(e))
            saved = self.log.try_append(submission.to_record())

            return SubmissionOutcome(
                submission=submission,
                submitted_at=submitted_at,
                support_sent=submission.support_message_id is not None,
                auto_reply_sent=submission.auto_reply_message_id is not None,
                saved=saved,
                error=str(e),
            )

    async def _send_support_notification(self, submission: Submission, submitted_at: str) -> Optional[SendResult]:
        try:
            rendered = self.renderer.render(
                'support_notification',
                brand=self.brand_name,
                name=submission.name,
                email=submission.email,
                phone=submission.phone,
                service=submission.service,
                message=submission.message,
                reference=submission.id,
                submitted_at=submitted_at,
            )
            result = await self.mailer.send(OutgoingEmail(
                to=self.support_address,
                subject=f"📧 New Contact: {header_safe(submission.name)} - {header_safe(submission.service)}",
                html=rendered.html,
                text=rendered.text,
                from_name=f"{self.brand_name} Website",
                reply_to=header_safe(submission.email),
            ))
        except Exception as e:
            logger.error(f"Support email failed for {submission.id}: {e}")
            return None

        logger.info(f"Support email sent: {result.message_id}")
        return result

    async def _send_auto_reply(self, submission: Submission) -> Optional[SendResult]:
        recipient = single_address(submission.email)
        if recipient is None:
            logger.warning(f"Auto-reply skipped for {submission.id}: {submission.email!r} is not a single address")
            return None

        try:
            rendered = self.renderer.render(
                'auto_reply',
                brand=self.brand_name,
                name=submission.name,
                phone=submission.phone,
                service=submission.service,
                reference=submission.id,
            )
            result = await self.mailer.send(OutgoingEmail(
                to=recipient,
                subject=f"We've received your inquiry - {self.brand_name}",
                html=rendered.html,
                text=rendered.text,
                from_name=self.brand_name,
            ))
        except Exception as e:
            logger.error(f"Auto-reply email failed for {submission.id}: {e}")
            return None

        logger.info(f"Auto-reply sent to client: {result.message_id}")
        return result

    async def send_simple(self, form: ContactForm) -> SendResult:
        """Single support email, no validation and no record"""
        rendered = self.renderer.render(
            'simple_contact',
            name=form.name,
            email=form.email,
            phone=form.phone,
            service=form.service,
            message=form.message,
            sent_at=self.display_time(),
        )
        result = await self.mailer.send(OutgoingEmail(
            to=self.support_address,
            subject=f"Contact Form: {header_safe(form.name)}",
            html=rendered.html,
            text=rendered.text,
            from_name=self.brand_name,
            reply_to=header_safe(form.email) or None,
        ))
        logger.info(f"Simple email sent: {result.message_id}")
        return result

    async def send_test_email(self) -> SendResult:
        """Send a test message to the support inbox"""
        rendered = self.renderer.render(
            'server_test',
            service_name=self.service_name,
            sent_at=self.display_time(),
            email=self.support_address,
        )
        result = await self.mailer.send(OutgoingEmail(
            to=self.support_address,
            subject=f"✅ {self.brand_name} - Server Test",
            html=rendered.html,
            text=rendered.text,
            from_name=self.brand_name,
        ))
        logger.info(f"Test email sent: {result.message_id}")
        return result

    async def verify_smtp(self) -> bool:
        return await self.mailer.verify()

    def save_backup(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Store a raw payload under a BACKUP- reference"""
        record = backup_record(payload)
        if self.log.try_append(record):
            logger.info(f"Submission saved locally: {record['id']}")
        return record

    def recent_submissions(self, limit: int = 20) -> Tuple[int, List[Dict[str, Any]]]:
        """Total record count and the newest `limit` records, newest first"""
        return self.log.count(), self.log.recent(limit)
