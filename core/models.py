# core/models.py
"""
Submission records written to the local JSON log
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

PHONE_NOT_PROVIDED = 'Not provided'
DELIVERY_FAILED = 'failed'


class SubmissionStatus(Enum):
    SENT = "sent"
    FAILED = "failed"


def timestamp_reference(prefix: str) -> str:
    """Prefix followed by the last 8 digits of the current epoch in milliseconds"""
    return prefix + str(int(time.time() * 1000))[-8:]


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass
class Submission:
    """One contact-form submission and the outcome of its two emails"""
    id: str
    name: Any
    email: Any
    service: Any
    message: Any
    phone: Any = None
    timestamp: str = field(default_factory=utc_now_iso)
    status: SubmissionStatus = SubmissionStatus.SENT
    support_message_id: Optional[str] = None
    auto_reply_message_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def new(cls, name, email, service, message, phone=None) -> 'Submission':
        return cls(
            id=timestamp_reference('NL'),
            name=name,
            email=email,
            service=service,
            message=message,
            phone=phone,
        )

    def mark_failed(self, error: str) -> None:
        self.status = SubmissionStatus.FAILED
        self.error = error

    def to_record(self) -> Dict[str, Any]:
        """JSON-serializable form stored in the log"""
        record = {
            'id': self.id,
            'timestamp': self.timestamp,
            'name': self.name,
            'email': self.email,
            'phone': self.phone or PHONE_NOT_PROVIDED,
            'service': self.service,
            'message': self.message,
            'status': self.status.value,
        }
        if self.status is SubmissionStatus.FAILED:
            record['error'] = self.error
        else:
            record['emails'] = {
                'support': self.support_message_id or DELIVERY_FAILED,
                'autoReply': self.auto_reply_message_id or DELIVERY_FAILED,
            }
        return record


def backup_record(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Raw record for the save endpoint; payload keys take precedence"""
    record = {
        'id': timestamp_reference('BACKUP-'),
        'timestamp': utc_now_iso(),
    }
    record.update(payload)
    return record
