"""
Shared fixtures: the real Flask app with an in-memory mailer and a
submission log under tmp_path.
"""

from datetime import datetime, timezone

import aiosmtplib
import pytest

from app import create_app
from core.mailer import SendResult
from core.submission_log import SubmissionLog


class FakeMailer:
    """Records outgoing mail instead of talking to an SMTP server"""

    def __init__(self):
        self.sent = []
        self.fail_all = False
        self.fail_for = set()
        self.verify_error = None

    async def send(self, email):
        if self.fail_all or email.to in self.fail_for:
            raise aiosmtplib.SMTPResponseException(550, 'Mailbox unavailable')
        self.sent.append(email)
        return SendResult(
            message_id=f"<{len(self.sent)}@test.local>",
            response='250 2.0.0 OK queued',
            sent_at=datetime.now(timezone.utc),
        )

    async def verify(self):
        if self.verify_error is not None:
            raise self.verify_error
        return True


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def submission_log(tmp_path):
    return SubmissionLog(tmp_path / 'submissions.json')


@pytest.fixture
def app(mailer, submission_log, tmp_path):
    app = create_app(
        'testing',
        mailer=mailer,
        submission_log=submission_log,
        config_overrides={'SUBMISSIONS_DIR': str(tmp_path)},
    )
    return app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def valid_form():
    return {'name': 'A', 'email': 'a@b.com', 'service': 'web', 'message': 'hi'}
